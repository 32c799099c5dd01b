"""Tests for API endpoint detection."""

from __future__ import annotations

import pytest

from prdgen.analyzers.endpoints import (
    ApiEndpointDetector,
    dedupe_endpoints,
    extract_call_sites,
    extract_route_handlers,
    normalize_path,
    route_path_from_file,
)
from prdgen.models import Endpoint
from tests._fixtures.repo_builder import RepoBuilder


def _pairs(endpoints) -> list[tuple[str, str]]:
    return [(endpoint.method, endpoint.path) for endpoint in endpoints]


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("/api/users/${id}", "/api/users/:param"),
        ("/api/users/${user.id}/posts?limit=10", "/api/users/:param/posts"),
        ("/api/items/[id]", "/api/items/:id"),
        ("/api/docs/[...slug]", "/api/docs/:slug"),
        ("/users/{userId}", "/users/:userId"),
        ("/files/<int:file_id>", "/files/:file_id"),
        ("api//orders/", "/api/orders"),
        ("", "/"),
    ],
)
def test_normalize_path(raw: str, expected: str) -> None:
    assert normalize_path(raw) == expected


def test_route_path_from_file_handles_app_and_pages_routers() -> None:
    assert route_path_from_file("src/app/api/users/route.ts") == "/api/users"
    assert route_path_from_file("app/api/(admin)/teams/[teamId]/route.ts") == "/api/teams/:teamId"
    assert route_path_from_file("pages/api/orders/index.ts") == "/api/orders"
    assert route_path_from_file("src/lib/format.ts") is None


def test_extract_call_sites_covers_client_idioms() -> None:
    content = """
        const users = await fetch('/api/users');
        await fetch(`/api/users/${id}`, { method: 'DELETE' });
        axios.post('/api/invoices', payload);
        apiClient.patch("/api/invoices/" + id);
        api.put('/api/settings', body);
        const { data } = useQuery('/api/projects', fetcher);
        const mutation = useMutation({ url: '/api/projects' });
        fetch('https://example.com/external');
    """

    found = _pairs(extract_call_sites(content, "src/pages/Users.tsx"))

    assert ("GET", "/api/users") in found
    assert ("DELETE", "/api/users/${id}") in found
    assert ("post", "/api/invoices") in found
    assert ("patch", "/api/invoices/") in found
    assert ("put", "/api/settings") in found
    assert ("GET", "/api/projects") in found
    assert ("POST", "/api/projects") in found
    assert all(not path.startswith("https://") for _, path in found)


def test_extract_call_sites_detects_express_and_graphql() -> None:
    content = """
        router.get('/orders', listOrders);
        app.post('/orders/:id/refund', refund);
        const GET_USERS = gql`
          query ListUsers {
            users { id }
          }
        `;
    """

    endpoints = list(extract_call_sites(content, "server/routes/orders.js"))

    assert ("get", "/orders") in _pairs(endpoints)
    assert ("post", "/orders/:id/refund") in _pairs(endpoints)
    graphql = [endpoint for endpoint in endpoints if endpoint.framework == "graphql"]
    assert _pairs(graphql) == [("GRAPHQL", "/graphql/ListUsers")]
    assert graphql[0].line == 5


def test_extract_route_handlers_reads_exported_verbs() -> None:
    content = """
export async function GET(request: Request) {}
export const POST = async () => {};
export function helper() {}
"""

    endpoints = list(extract_route_handlers(content, "app/api/users/[id]/route.ts"))

    assert _pairs(endpoints) == [("GET", "/api/users/:id"), ("POST", "/api/users/:id")]
    assert {endpoint.framework for endpoint in endpoints} == {"nextjs"}


def test_extract_route_handlers_ignores_non_route_files() -> None:
    content = "export async function GET() {}\n"
    assert list(extract_route_handlers(content, "src/lib/client.ts")) == []


def test_dedupe_endpoints_keeps_first_and_sorts() -> None:
    endpoints = [
        Endpoint(method="post", path="/b", file="one.ts", line=1, framework="client"),
        Endpoint(method="GET", path="/a/${x}", file="two.ts", line=2, framework="client"),
        Endpoint(method="POST", path="/b", file="three.ts", line=3, framework="express"),
    ]

    unique = dedupe_endpoints(endpoints)

    assert _pairs(unique) == [("GET", "/a/:param"), ("POST", "/b")]
    assert unique[1].file == "one.ts"


def test_detector_finds_route_handlers_in_repository(acme_repo: RepoBuilder) -> None:
    result = ApiEndpointDetector().detect(acme_repo.scan())

    assert _pairs(result.facts) == [("GET", "/api/users"), ("POST", "/api/users")]
    assert result.framework == "nextjs"


def test_detector_tags_express_backends(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            "server/routes/users.js": """
                router.get('/users', list);
                router.delete('/users/:id', remove);
            """,
            "src/pages/Users.tsx": "fetch('/users');\n",
            "types/global.d.ts": "declare function fetch(url: '/ignored'): void;\n",
        }
    )

    result = ApiEndpointDetector().detect(repo_builder.scan())

    assert _pairs(result.facts) == [("GET", "/users"), ("DELETE", "/users/:id")]
    assert result.framework == "express"
