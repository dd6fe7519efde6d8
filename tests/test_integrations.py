"""Tests for the vendor API clients and the knowledge base."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import aiohttp
import pytest

from src.errors import TransportError, VendorAPIError
from src.integrations.base import VendorClient, VendorResponse
from src.integrations.linear import LinearClient
from src.integrations.miro import MiroClient, shape_color, sticky_color
from src.integrations.notion import MAX_BLOCKS_PER_REQUEST, NotionClient, paragraph
from src.integrations.pinecone import PineconeClient
from src.knowledge import KnowledgeBase, KnowledgeDocument, KnowledgeSnippet, format_snippets
from tests.fakes import failed, ok


def http_response(status: int = 200, body=None, reason: str = "OK"):
    """An aiohttp response usable as ``async with session.request(...)``."""
    response = MagicMock()
    response.status = status
    response.reason = reason
    response.json = AsyncMock(return_value=body)
    context = MagicMock()
    context.__aenter__ = AsyncMock(return_value=response)
    context.__aexit__ = AsyncMock(return_value=False)
    return context


def attach_session(client: VendorClient, *responses) -> MagicMock:
    """Give ``client`` a session that answers with ``responses`` in order."""
    session = MagicMock()
    session.closed = False
    session.request = MagicMock(side_effect=list(responses))
    client._session = session
    return session


class TestVendorClient:
    """Tests for VendorClient._request."""

    @pytest.mark.asyncio
    async def test_success(self):
        client = VendorClient("key", "https://api.example.com/")
        session = attach_session(client, http_response(200, {"id": "1"}))

        response = await client._request("GET", "/things/1")

        assert response.success is True
        assert response.data == {"id": "1"}
        args = session.request.call_args
        assert args.args == ("GET", "https://api.example.com/things/1")

    @pytest.mark.asyncio
    async def test_error_status_not_raised(self):
        client = VendorClient("key", "https://api.example.com")
        attach_session(client, http_response(404, {"message": "No such thing"}, reason="Not Found"))

        response = await client._request("GET", "/things/2")

        assert response.success is False
        assert response.status == 404
        assert response.message == "No such thing"

    @pytest.mark.asyncio
    async def test_reason_used_without_body(self):
        client = VendorClient("key", "https://api.example.com")
        attach_session(client, http_response(502, None, reason="Bad Gateway"))

        response = await client._request("GET", "/things")

        assert response.message == "Bad Gateway"

    @pytest.mark.asyncio
    async def test_connection_error(self):
        client = VendorClient("key", "https://api.example.com")
        session = attach_session(client)
        session.request = MagicMock(side_effect=aiohttp.ClientConnectionError("refused"))

        with pytest.raises(TransportError) as exc_info:
            await client._request("GET", "/things")

        assert "refused" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_timeout(self):
        client = VendorClient("key", "https://api.example.com")
        session = attach_session(client)
        session.request = MagicMock(side_effect=asyncio.TimeoutError())

        with pytest.raises(TransportError) as exc_info:
            await client._request("GET", "/things")

        assert "timed out" in exc_info.value.message

    def test_unwrap_failure(self):
        response = VendorResponse(vendor="miro", success=False, status=403, message="Forbidden")

        with pytest.raises(VendorAPIError) as exc_info:
            response.unwrap()

        assert exc_info.value.vendor == "miro"
        assert exc_info.value.status_code == 403

    @pytest.mark.asyncio
    async def test_close(self):
        client = VendorClient("key", "https://api.example.com")
        session = attach_session(client)
        session.close = AsyncMock()

        await client.close()

        session.close.assert_awaited_once()
        assert client._session is None


class TestLinearClient:
    """Tests for LinearClient."""

    def test_raw_api_key_header(self):
        assert LinearClient("lin_api_123")._auth_headers() == {"Authorization": "lin_api_123"}

    @pytest.mark.asyncio
    async def test_graphql_errors_are_failures(self):
        client = LinearClient("key")
        attach_session(client, http_response(200, {"errors": [{"message": "Team not found"}]}))

        response = await client.get_team("missing")

        assert response.success is False
        assert response.message == "Team not found"

    @pytest.mark.asyncio
    async def test_get_teams(self):
        client = LinearClient("key")
        teams = [{"id": "t1", "name": "Core", "key": "COR"}]
        attach_session(client, http_response(200, {"data": {"teams": {"nodes": teams}}}))

        response = await client.get_teams()

        assert response.data == teams

    @pytest.mark.asyncio
    async def test_create_issue(self):
        client = LinearClient("key")
        issue = {"id": "i1", "identifier": "COR-1", "title": "Sign up", "url": "https://linear.app/i1"}
        session = attach_session(
            client, http_response(200, {"data": {"issueCreate": {"success": True, "issue": issue}}})
        )

        response = await client.create_issue("t1", "Sign up", cycle_id="c1", estimate=3, priority=1)

        assert response.data == issue
        sent = session.request.call_args.kwargs["json"]["variables"]["input"]
        assert sent == {"teamId": "t1", "title": "Sign up", "cycleId": "c1", "estimate": 3, "priority": 1}

    @pytest.mark.asyncio
    async def test_mutation_unsuccessful(self):
        client = LinearClient("key")
        attach_session(client, http_response(200, {"data": {"cycleCreate": {"success": False}}}))

        response = await client.create_cycle("t1", "Sprint 1", "2026-01-01", "2026-01-15")

        assert response.success is False
        assert "cycleCreate" in response.message


class TestNotionClient:
    """Tests for NotionClient."""

    def test_headers(self):
        headers = NotionClient("secret", notion_version="2022-06-28")._auth_headers()

        assert headers == {"Authorization": "Bearer secret", "Notion-Version": "2022-06-28"}

    @pytest.mark.asyncio
    async def test_create_page_limits_children(self):
        client = NotionClient("secret")
        session = attach_session(client, http_response(200, {"id": "page-1"}))
        blocks = [paragraph(f"Line {i}") for i in range(150)]

        await client.create_page("db-1", "PRD", children=blocks)

        payload = session.request.call_args.kwargs["json"]
        assert len(payload["children"]) == MAX_BLOCKS_PER_REQUEST
        assert payload["parent"] == {"database_id": "db-1"}

    @pytest.mark.asyncio
    async def test_append_in_chunks(self):
        client = NotionClient("secret")
        session = attach_session(client, *[http_response(200, {}) for _ in range(3)])
        blocks = [paragraph(f"Line {i}") for i in range(250)]

        response = await client.append_blocks("page-1", blocks)

        assert response.success is True
        assert response.data == {"appended": 250}
        sizes = [len(c.kwargs["json"]["children"]) for c in session.request.call_args_list]
        assert sizes == [100, 100, 50]

    @pytest.mark.asyncio
    async def test_append_stops_at_failed_chunk(self):
        client = NotionClient("secret")
        session = attach_session(
            client,
            http_response(200, {}),
            http_response(429, {"message": "Rate limited"}),
            http_response(200, {}),
        )
        blocks = [paragraph(f"Line {i}") for i in range(250)]

        response = await client.append_blocks("page-1", blocks)

        assert response.success is False
        assert response.message == "Rate limited"
        assert session.request.call_count == 2


class TestMiroClient:
    """Tests for MiroClient."""

    def test_sticky_colors(self):
        assert sticky_color("#F44336") == "red"
        assert sticky_color("red") == "red"
        assert sticky_color("#123456") == "light_yellow"
        assert sticky_color(None) == "light_yellow"

    def test_shape_colors(self):
        assert shape_color("#e8f0fe") == "#e8f0fe"
        assert shape_color("blue") == "#ffffff"

    @pytest.mark.asyncio
    async def test_create_board_truncates_name(self):
        client = MiroClient("token")
        session = attach_session(client, http_response(201, {"id": "b1"}))

        response = await client.create_board("x" * 100)

        assert response.success is True
        assert len(session.request.call_args.kwargs["json"]["name"]) == 60


class TestPineconeClient:
    """Tests for PineconeClient."""

    def test_host_gets_scheme(self):
        client = PineconeClient("key", "index-abc.svc.pinecone.io")

        assert client.base_url == "https://index-abc.svc.pinecone.io"
        assert client._auth_headers() == {"Api-Key": "key"}

    @pytest.mark.asyncio
    async def test_list_indexes_uses_control_plane(self):
        client = PineconeClient("key", "index-abc.svc.pinecone.io")
        session = attach_session(client, http_response(200, {"indexes": [{"name": "kb"}]}))

        response = await client.list_indexes()

        assert response.data == [{"name": "kb"}]
        assert session.request.call_args.args[1] == "https://api.pinecone.io/indexes"

    @pytest.mark.asyncio
    async def test_query_returns_matches(self):
        client = PineconeClient("key", "https://index-abc.svc.pinecone.io")
        attach_session(client, http_response(200, {"matches": [{"id": "m1", "score": 0.9}]}))

        response = await client.query([0.1, 0.2], top_k=2)

        assert response.data == [{"id": "m1", "score": 0.9}]


class TestKnowledgeBase:
    """Tests for KnowledgeBase."""

    @pytest.fixture
    def embeddings(self):
        embeddings = MagicMock()
        embeddings.aembed_query = AsyncMock(return_value=[0.1, 0.2])
        embeddings.aembed_documents = AsyncMock(side_effect=lambda texts: [[0.1, 0.2] for _ in texts])
        return embeddings

    @pytest.mark.asyncio
    async def test_search(self, embeddings):
        pinecone = MagicMock()
        pinecone.query = AsyncMock(return_value=ok([
            {"id": "rice", "score": 0.8, "metadata": {"title": "RICE", "content": "Score by reach"}},
            {"id": "empty", "score": 0.5, "metadata": {}},
        ]))
        knowledge = KnowledgeBase(pinecone, embeddings, top_k=2)

        snippets = await knowledge.search("prioritise features")

        assert snippets == [KnowledgeSnippet(id="rice", title="RICE", content="Score by reach", score=0.8)]
        pinecone.query.assert_awaited_once_with([0.1, 0.2], top_k=2, namespace=None)

    @pytest.mark.asyncio
    async def test_search_failure_yields_nothing(self, embeddings):
        pinecone = MagicMock()
        pinecone.query = AsyncMock(return_value=failed("Index not found", status=404))

        assert await KnowledgeBase(pinecone, embeddings).search("anything") == []

    @pytest.mark.asyncio
    async def test_embedding_failure_yields_nothing(self, embeddings):
        embeddings.aembed_query = AsyncMock(side_effect=RuntimeError("quota exceeded"))

        assert await KnowledgeBase(MagicMock(), embeddings).search("anything") == []

    @pytest.mark.asyncio
    async def test_index_documents(self, embeddings):
        pinecone = MagicMock()
        pinecone.upsert = AsyncMock(return_value=ok({"upsertedCount": 1}))
        document = KnowledgeDocument(id="d1", title="T", category="c", content="Body")

        count = await KnowledgeBase(pinecone, embeddings).index_documents([document])

        assert count == 1
        vectors = pinecone.upsert.await_args.args[0]
        assert vectors[0]["id"] == "d1"
        assert vectors[0]["metadata"]["content"] == "Body"

    def test_format_snippets(self):
        text = format_snippets([KnowledgeSnippet(id="a", title="MVP", content=" Keep it small ")])

        assert text == "Relevant product management knowledge:\n- MVP: Keep it small"

    def test_format_no_snippets(self):
        assert format_snippets([]) == ""
