"""Navigation state machine for exploring a package's dependency graph.

``NavigationState`` is an immutable value and the module-level transition
functions are pure: each returns the next state for one user event.
``GraphNavigator`` owns one exploration session. It applies transitions,
dispatches subgraph fetches to a ``GraphFetcher`` and keeps the rendered
``GraphView`` in sync.

Fetches are tagged with a generation number taken when they are dispatched.
Any later dispatch, or a re-render from cache, advances the generation, and a
response whose generation is no longer current is dropped. Fetch failures
keep the previously rendered graph and surface the error on the view.

License include/exclude filters and vulnerable highlights are applied by the
graph backend, so changing them while a node is open clears the subgraph
cache and re-fetches the current node. Switching the view mode only
re-renders what is already cached.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, replace
from typing import Dict, Iterable, Optional

from .fetcher import GraphFetcher, SubgraphFilters
from .graph_layout import GraphNode, Subgraph, highlight_nodes, structured_graph_output

logger = logging.getLogger(__name__)


VIEW_MODES = ("graph", "list")


@dataclass(frozen=True)
class NavigationState:
    current_node_id: str
    history: tuple[str, ...]
    included_licenses: frozenset[str] = frozenset()
    excluded_licenses: frozenset[str] = frozenset()
    highlighted_vulnerable: frozenset[str] = frozenset()
    view_mode: str = "graph"

    @property
    def can_go_back(self) -> bool:
        return len(self.history) > 1

    @property
    def filters(self) -> SubgraphFilters:
        return SubgraphFilters(
            included_licenses=tuple(sorted(self.included_licenses)),
            excluded_licenses=tuple(sorted(self.excluded_licenses)),
            highlight_ids=tuple(sorted(self.highlighted_vulnerable)),
        )


def open_navigation(root_id: str) -> NavigationState:
    return NavigationState(current_node_id=root_id, history=(root_id,))


def select_node(state: NavigationState, node_id: str) -> NavigationState:
    return replace(state, current_node_id=node_id, history=state.history + (node_id,))


def go_back(state: NavigationState) -> NavigationState:
    """Pop the current node; the root entry is never popped."""

    if not state.can_go_back:
        return state
    history = state.history[:-1]
    return replace(state, current_node_id=history[-1], history=history)


def set_license_filters(
    state: NavigationState, included: Iterable[str], excluded: Iterable[str]
) -> NavigationState:
    return replace(state, included_licenses=frozenset(included), excluded_licenses=frozenset(excluded))


def set_vulnerable_highlights(state: NavigationState, node_ids: Iterable[str]) -> NavigationState:
    return replace(state, highlighted_vulnerable=frozenset(node_ids))


def set_view_mode(state: NavigationState, mode: str) -> NavigationState:
    if mode not in VIEW_MODES:
        raise ValueError(f"Unknown view mode {mode!r}; expected one of {', '.join(VIEW_MODES)}")
    return replace(state, view_mode=mode)


@dataclass(frozen=True)
class GraphView:
    """What the exploration view should currently display."""

    node_id: Optional[str] = None
    subgraph: Subgraph = Subgraph()
    view_mode: str = "graph"
    loading: bool = False
    error: Optional[str] = None


def render_subgraph(subgraph: Subgraph, state: NavigationState) -> Subgraph:
    colored = highlight_nodes(subgraph, state.highlighted_vulnerable)
    if state.view_mode == "graph":
        return structured_graph_output(colored)
    # The list view shows the dependencies of the current node, not the node itself.
    return Subgraph(nodes=colored.nodes[1:], edges=colored.edges)


class GraphNavigator:
    """One exploration session over a dependency graph."""

    def __init__(self, fetcher: GraphFetcher, root_id: str) -> None:
        self.fetcher = fetcher
        self.state = open_navigation(root_id)
        self.view = GraphView(view_mode=self.state.view_mode)
        self.search_query = ""
        self.search_results: tuple[GraphNode, ...] = ()
        self.search_error: Optional[str] = None
        self._cache: Dict[str, Subgraph] = {}
        self._generation = 0
        self._search_epoch = 0
        self._pending: set[asyncio.Task] = set()

    @property
    def generation(self) -> int:
        return self._generation

    def open(self, root_id: Optional[str] = None) -> asyncio.Task:
        """Start (or restart) the session at ``root_id`` and fetch its subgraph.

        License filters, highlights and the view mode carry over.
        """

        root = root_id or self.state.history[0]
        self.state = replace(self.state, current_node_id=root, history=(root,))
        self._cache.clear()
        self._clear_search()
        self.view = GraphView(view_mode=self.state.view_mode)
        logger.info("opened graph exploration at %s", self.state.current_node_id)
        return self._dispatch()

    def select_node(self, node_id: str) -> asyncio.Task:
        self.state = select_node(self.state, node_id)
        self._clear_search()
        logger.info("selected %s (history depth %d)", node_id, len(self.state.history))
        return self._dispatch()

    def go_back(self) -> Optional[asyncio.Task]:
        """Return to the previous node; a no-op when only the root remains.

        Returns the fetch task when the previous node has to be re-fetched and
        ``None`` when it was rendered from cache or nothing changed.
        """

        previous = self.state
        self.state = go_back(previous)
        if self.state is previous:
            return None
        self._clear_search()
        logger.info("went back to %s", self.state.current_node_id)

        cached = self._cache.get(self.state.current_node_id)
        if cached is None:
            return self._dispatch()
        # Supersede any fetch still in flight for the node we just left.
        self._generation += 1
        self._render(cached)
        return None

    def set_license_filters(self, included: Iterable[str], excluded: Iterable[str]) -> Optional[asyncio.Task]:
        updated = set_license_filters(self.state, included, excluded)
        return self._refilter(updated)

    def set_vulnerable_highlights(self, node_ids: Iterable[str]) -> Optional[asyncio.Task]:
        updated = set_vulnerable_highlights(self.state, node_ids)
        return self._refilter(updated)

    def set_view_mode(self, mode: str) -> None:
        self.state = set_view_mode(self.state, mode)
        cached = self._cache.get(self.state.current_node_id)
        if cached is not None:
            self._render(cached)
        else:
            self.view = replace(self.view, view_mode=mode)

    def retry(self) -> asyncio.Task:
        """Re-fetch the current node, typically after a failed fetch."""

        self._cache.pop(self.state.current_node_id, None)
        return self._dispatch()

    async def search(self, query: str) -> tuple[GraphNode, ...]:
        """Search within the current graph; blank queries clear the results."""

        self._clear_search()
        if not query.strip():
            return ()
        self.search_query = query
        epoch = self._search_epoch
        node_id = self.state.current_node_id
        try:
            results = await self.fetcher.search(node_id, query)
        except Exception as exc:
            if epoch == self._search_epoch:
                logger.warning("graph search for %r failed: %s", query, exc)
                self.search_error = str(exc)
            return ()
        if epoch != self._search_epoch:
            logger.debug("discarding stale search results for %r", query)
            return ()
        self.search_results = tuple(results)
        return self.search_results

    async def settle(self) -> None:
        """Wait until every dispatched fetch has finished."""

        while self._pending:
            await asyncio.gather(*list(self._pending))

    def _clear_search(self) -> None:
        self._search_epoch += 1
        self.search_query = ""
        self.search_results = ()
        self.search_error = None

    def _refilter(self, updated: NavigationState) -> Optional[asyncio.Task]:
        if updated == self.state:
            return None
        self.state = updated
        self._cache.clear()
        return self._dispatch()

    def _dispatch(self) -> asyncio.Task:
        self._generation += 1
        generation = self._generation
        node_id = self.state.current_node_id
        self.view = replace(self.view, loading=True)
        task = asyncio.get_running_loop().create_task(self._load(generation, node_id, self.state.filters))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _load(self, generation: int, node_id: str, filters: SubgraphFilters) -> None:
        try:
            subgraph = await self.fetcher.fetch_subgraph(node_id, filters)
        except Exception as exc:
            # Any failure from the port is retryable; the previous graph stays on screen.
            if generation != self._generation:
                logger.debug("ignoring failure of superseded fetch for %s", node_id)
                return
            logger.warning("subgraph fetch for %s failed: %s", node_id, exc)
            self.view = replace(self.view, loading=False, error=str(exc))
            return

        if generation != self._generation:
            logger.debug("discarding stale subgraph for %s (generation %d)", node_id, generation)
            return
        self._cache[node_id] = subgraph
        self._render(subgraph)

    def _render(self, subgraph: Subgraph) -> None:
        self.view = GraphView(
            node_id=self.state.current_node_id,
            subgraph=render_subgraph(subgraph, self.state),
            view_mode=self.state.view_mode,
            loading=False,
            error=None,
        )
