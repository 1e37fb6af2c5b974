"""Graph backend port and its HTTP adapter."""

from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass, field
from typing import Any, List, Optional, Protocol
from urllib.parse import quote

import requests  # type: ignore[import-untyped]

from .graph_layout import GraphNode, Subgraph, subgraph_from_dict

logger = logging.getLogger(__name__)


DEFAULT_GRAPH_URL = "http://localhost:3000"


class FetchError(Exception):
    """A graph backend request failed; callers may retry."""


@dataclass(frozen=True)
class SubgraphFilters:
    included_licenses: tuple[str, ...] = ()
    excluded_licenses: tuple[str, ...] = ()
    highlight_ids: tuple[str, ...] = ()


class GraphFetcher(Protocol):
    async def fetch_subgraph(self, root_id: str, filters: SubgraphFilters) -> Subgraph:
        ...

    async def search(self, root_id: str, query: str) -> List[GraphNode]:
        ...


def _default_timeout() -> float:
    env_timeout = os.environ.get("DEPWATCH_GRAPH_TIMEOUT")
    try:
        return float(env_timeout) if env_timeout is not None else 8.0
    except ValueError:
        return 8.0


@dataclass
class HttpGraphFetcher:
    """Fetch subgraphs and search results from the SBOM graph service.

    ``watchlist_id`` selects the project-dependency routes; setting
    ``user_watchlist`` switches to the per-user watchlist routes instead.
    """

    watchlist_id: str
    base_url: str = field(default_factory=lambda: os.environ.get("DEPWATCH_GRAPH_URL", DEFAULT_GRAPH_URL))
    timeout: float = field(default_factory=_default_timeout)
    user_watchlist: bool = False
    session: Optional[requests.Session] = None

    def _url(self, route: str, *segments: str) -> str:
        prefix = "user-" if self.user_watchlist else ""
        path = "/".join(quote(segment, safe="") for segment in (self.watchlist_id, *segments))
        return f"{self.base_url.rstrip('/')}/sbom/{prefix}{route}/{path}"

    def _get(self, url: str, params: Optional[dict[str, str]] = None) -> Any:
        getter = self.session.get if self.session is not None else requests.get
        try:
            response = getter(url, params=params, timeout=self.timeout)
        except requests.RequestException as exc:
            raise FetchError(f"Unable to reach graph service: {exc}") from exc
        if response.status_code != 200:
            raise FetchError(f"Graph service returned {response.status_code} for {url}")
        try:
            return response.json()
        except ValueError as exc:
            raise FetchError(f"Graph service returned invalid JSON: {exc}") from exc

    def fetch_subgraph_sync(self, root_id: str, filters: SubgraphFilters) -> Subgraph:
        params = {
            "vulns": ",".join(filters.highlight_ids),
            "include": ",".join(filters.included_licenses),
            "exclude": ",".join(filters.excluded_licenses),
        }
        payload = self._get(self._url("graph-dependencies", root_id), params=params)
        if not isinstance(payload, dict):
            raise FetchError("Graph service returned an unexpected subgraph payload")
        nodes = payload.get("nodes") or []
        edges = payload.get("edges") or payload.get("links") or []
        if not isinstance(nodes, list) or not isinstance(edges, list):
            raise FetchError("Graph service returned malformed nodes or edges")
        return subgraph_from_dict(payload)

    def search_sync(self, root_id: str, query: str) -> List[GraphNode]:
        # The search routes are scoped to the watchlist, not the current node.
        payload = self._get(self._url("search", query))
        if not isinstance(payload, list):
            raise FetchError("Graph service returned an unexpected search payload")
        matches = [entry.get("node") for entry in payload if isinstance(entry, dict)]
        return list(subgraph_from_dict({"nodes": [m for m in matches if m]}).nodes)

    async def fetch_subgraph(self, root_id: str, filters: SubgraphFilters) -> Subgraph:
        logger.debug("fetching subgraph for %s", root_id)
        return await asyncio.to_thread(self.fetch_subgraph_sync, root_id, filters)

    async def search(self, root_id: str, query: str) -> List[GraphNode]:
        return await asyncio.to_thread(self.search_sync, root_id, query)
