import pytest
import requests

from depwatch.fetcher import FetchError, HttpGraphFetcher, SubgraphFilters


class FakeResponse:
    def __init__(self, payload, status_code=200):
        self._payload = payload
        self.status_code = status_code

    def json(self):
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


class FakeSession:
    def __init__(self, response):
        self.response = response
        self.requests = []

    def get(self, url, params=None, timeout=None):
        self.requests.append((url, params, timeout))
        if isinstance(self.response, Exception):
            raise self.response
        return self.response


SUBGRAPH = {
    "nodes": [
        {"id": "pkg:npm/react@18.2.0", "name": "react"},
        {"id": "pkg:npm/loose-envify@1.4.0", "name": "loose-envify", "colorTag": "affected"},
    ],
    "links": [{"source": "pkg:npm/react@18.2.0", "target": "pkg:npm/loose-envify@1.4.0"}],
}


def test_fetch_subgraph_builds_project_route():
    session = FakeSession(FakeResponse(SUBGRAPH))
    fetcher = HttpGraphFetcher("wl-1", base_url="https://graph.example/", timeout=3, session=session)
    filters = SubgraphFilters(
        included_licenses=("MIT",), excluded_licenses=("GPL-3.0",), highlight_ids=("a", "b")
    )
    subgraph = fetcher.fetch_subgraph_sync("pkg:npm/react@18.2.0", filters)

    url, params, timeout = session.requests[0]
    assert url == "https://graph.example/sbom/graph-dependencies/wl-1/pkg%3Anpm%2Freact%4018.2.0"
    assert params == {"vulns": "a,b", "include": "MIT", "exclude": "GPL-3.0"}
    assert timeout == 3
    assert subgraph.root.name == "react"
    assert subgraph.nodes[1].color_tag == "affected"


def test_user_watchlist_routes():
    session = FakeSession(FakeResponse([{"node": {"id": "n1", "name": "lodash"}}, {"other": 1}]))
    fetcher = HttpGraphFetcher("wl-9", base_url="http://localhost:3000", user_watchlist=True, session=session)
    results = fetcher.search_sync("root", "lod ash")
    assert session.requests[0][0] == "http://localhost:3000/sbom/user-search/wl-9/lod%20ash"
    assert [node.name for node in results] == ["lodash"]


def test_non_200_raises_fetch_error():
    fetcher = HttpGraphFetcher("wl-1", session=FakeSession(FakeResponse({}, status_code=503)))
    with pytest.raises(FetchError, match="503"):
        fetcher.fetch_subgraph_sync("root", SubgraphFilters())


def test_network_error_raises_fetch_error():
    fetcher = HttpGraphFetcher("wl-1", session=FakeSession(requests.ConnectionError("refused")))
    with pytest.raises(FetchError, match="Unable to reach"):
        fetcher.fetch_subgraph_sync("root", SubgraphFilters())


def test_invalid_payloads_raise_fetch_error():
    bad_json = HttpGraphFetcher("wl-1", session=FakeSession(FakeResponse(ValueError("no json"))))
    with pytest.raises(FetchError, match="invalid JSON"):
        bad_json.fetch_subgraph_sync("root", SubgraphFilters())

    wrong_shape = HttpGraphFetcher("wl-1", session=FakeSession(FakeResponse({"nodes": []})))
    with pytest.raises(FetchError):
        wrong_shape.search_sync("root", "x")


@pytest.mark.parametrize(
    "payload",
    [
        {"nodes": 5},
        {"nodes": [{"id": "a"}], "links": "a->b"},
        {"nodes": [{"id": "a"}], "edges": {"source": "a", "target": "b"}},
    ],
)
def test_malformed_subgraph_shapes_raise_fetch_error(payload):
    fetcher = HttpGraphFetcher("wl-1", session=FakeSession(FakeResponse(payload)))
    with pytest.raises(FetchError, match="malformed"):
        fetcher.fetch_subgraph_sync("root", SubgraphFilters())


def test_partial_subgraph_payload_is_accepted():
    fetcher = HttpGraphFetcher("wl-1", session=FakeSession(FakeResponse({"nodes": [{"id": "solo"}]})))
    subgraph = fetcher.fetch_subgraph_sync("solo", SubgraphFilters())
    assert [node.id for node in subgraph.nodes] == ["solo"]
    assert subgraph.edges == ()


def test_defaults_come_from_environment(monkeypatch):
    monkeypatch.setenv("DEPWATCH_GRAPH_URL", "https://graph.internal")
    monkeypatch.setenv("DEPWATCH_GRAPH_TIMEOUT", "not-a-number")
    fetcher = HttpGraphFetcher("wl-1")
    assert fetcher.base_url == "https://graph.internal"
    assert fetcher.timeout == 8.0

    monkeypatch.setenv("DEPWATCH_GRAPH_TIMEOUT", "2.5")
    assert HttpGraphFetcher("wl-1").timeout == 2.5


def test_module_level_requests_used_without_session(monkeypatch):
    seen = {}

    def fake_get(url, params=None, timeout=None):
        seen["url"] = url
        return FakeResponse(SUBGRAPH)

    monkeypatch.setattr(requests, "get", fake_get)
    fetcher = HttpGraphFetcher("wl-1", base_url="http://graph")
    fetcher.fetch_subgraph_sync("root", SubgraphFilters())
    assert seen["url"] == "http://graph/sbom/graph-dependencies/wl-1/root"


@pytest.mark.asyncio
async def test_async_fetch_runs_in_thread():
    session = FakeSession(FakeResponse(SUBGRAPH))
    fetcher = HttpGraphFetcher("wl-1", base_url="http://graph", session=session)
    subgraph = await fetcher.fetch_subgraph("root", SubgraphFilters())
    assert len(subgraph.nodes) == 2
    results = await HttpGraphFetcher(
        "wl-1", session=FakeSession(FakeResponse([{"node": {"id": "x"}}]))
    ).search("root", "x")
    assert [node.id for node in results] == ["x"]
