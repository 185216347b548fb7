import httpx
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from conftest import FakeEmbedClient, FakeLLMClient, FakeWebSearchClient
from server.api.api_app import register_routes
from server.api.services.AppServices import AppServices
from shared.clients.rag.memory.RAGClientMemory import RAGClientMemory

HEADERS = {"X-API-Key": "test-key"}
DOCUMENT = (
    "Solar Warranty\n"
    + "Warranty coverage includes hail damage to the rooftop solar panels and inverter replacement. " * 20
)


@pytest.fixture
def llm():
    return FakeLLMClient()


@pytest.fixture
def client(helper_config, logger, llm, tmp_path):
    app = FastAPI()
    register_routes(app)
    app.state.config = helper_config
    app.state.logging = logger
    app.state.services = AppServices(
        helper_config,
        llm_client=llm,
        embed_client=FakeEmbedClient(),
        rag_client=RAGClientMemory(helper_config),
        web_search_client=FakeWebSearchClient(),
        upload_dir=str(tmp_path / "uploads"),
    )
    # one event loop for the whole test so background ingestion can finish
    with TestClient(app) as test_client:
        yield test_client


def _upload(client, owner_id="alice", text=DOCUMENT, name="warranty.txt"):
    response = client.post(
        "/files",
        headers=HEADERS,
        data={"owner_id": owner_id},
        files={"file": (name, text.encode(), "text/plain")},
    )
    assert response.status_code == 201
    return response.json()


class TestAuth:
    def test_missing_key(self, client):
        response = client.post("/chat/standard", json={"owner_id": "alice", "query": "hi"})
        assert response.status_code == 401

    def test_wrong_key(self, client):
        response = client.get("/files", params={"owner_id": "alice"}, headers={"X-API-Key": "nope"})
        assert response.status_code == 401

    def test_health_is_open(self, client):
        response = client.get("/healthz")
        assert response.status_code == 200
        assert response.json() == {"status": "ok", "indexed_chunks": 0}


class TestFiles:
    def test_upload_list_delete(self, client):
        uploaded = _upload(client)
        assert uploaded["original_name"] == "warranty.txt"

        listed = client.get("/files", params={"owner_id": "alice"}, headers=HEADERS).json()
        assert [f["file_id"] for f in listed] == [uploaded["file_id"]]
        assert client.get("/files", params={"owner_id": "bob"}, headers=HEADERS).json() == []

        deleted = client.delete(f"/files/{uploaded['file_id']}", params={"owner_id": "alice"}, headers=HEADERS)
        assert deleted.status_code == 204
        assert client.get("/files", params={"owner_id": "alice"}, headers=HEADERS).json() == []

    def test_empty_upload_is_rejected(self, client):
        response = client.post(
            "/files",
            headers=HEADERS,
            data={"owner_id": "alice"},
            files={"file": ("empty.txt", b"", "text/plain")},
        )
        assert response.status_code == 400
        assert response.json()["error"] == "ValidationError"

    def test_delete_foreign_file(self, client):
        uploaded = _upload(client)
        response = client.delete(f"/files/{uploaded['file_id']}", params={"owner_id": "bob"}, headers=HEADERS)
        assert response.status_code == 404


class TestChat:
    def test_standard(self, client, llm):
        response = client.post(
            "/chat/standard",
            headers=HEADERS,
            json={"owner_id": "alice", "query": "hello", "history": [{"role": "assistant", "content": "Hi!"}]},
        )
        assert response.status_code == 200
        body = response.json()
        assert body["search_type"] == "standard"
        assert body["message"] == "fake answer"
        assert llm.calls[0]["history"] == [{"role": "assistant", "content": "Hi!"}]

    def test_rag_without_file(self, client):
        response = client.post("/chat/rag", headers=HEADERS, json={"owner_id": "alice", "query": "what is covered?"})
        assert response.status_code == 200
        assert response.json()["search_type"] == "rag_error"

    def test_rag_over_upload(self, client):
        uploaded = _upload(client)
        response = client.post(
            "/chat/rag",
            headers=HEADERS,
            json={
                "owner_id": "alice",
                "query": "warranty coverage includes hail damage to the rooftop solar panels",
                "file_id": uploaded["file_id"],
            },
        )
        body = response.json()
        assert body["search_type"] == "rag"
        assert body["sources"][0]["title"] == "warranty.txt"
        assert body["score"] > 0.65

    def test_rag_on_foreign_file(self, client):
        uploaded = _upload(client)
        response = client.post(
            "/chat/rag",
            headers=HEADERS,
            json={"owner_id": "bob", "query": "anything", "file_id": uploaded["file_id"]},
        )
        assert response.status_code == 404
        assert response.json()["error"] == "NotFoundError"

    def test_provider_error_is_mapped(self, client, llm):
        llm.error = RuntimeError("429 Too Many Requests")
        response = client.post("/chat/standard", headers=HEADERS, json={"owner_id": "alice", "query": "hello"})
        assert response.status_code == 429
        assert response.json()["kind"] == "rate_limited"

    def test_blank_query(self, client):
        response = client.post("/chat/standard", headers=HEADERS, json={"owner_id": "alice", "query": "   "})
        assert response.status_code == 400


class TestContent:
    def test_mind_map_falls_back_to_outline(self, client):
        uploaded = _upload(client)
        response = client.post("/content/mindmap", headers=HEADERS, json={"owner_id": "alice", "file_id": uploaded["file_id"]})
        assert response.status_code == 200
        nodes = response.json()["nodes"]
        assert nodes[0]["data"]["label"] == "Solar Warranty"

    def test_report(self, client, llm):
        uploaded = _upload(client)
        llm.replies = ["# Solar Warranty Report"]
        response = client.post(
            "/content/report",
            headers=HEADERS,
            json={"owner_id": "alice", "file_id": uploaded["file_id"], "title": "Warranty"},
        )
        assert response.json() == {"title": "Warranty", "content": "# Solar Warranty Report", "degraded": False}

    def test_podcast_fallback(self, client, llm):
        uploaded = _upload(client)
        llm.error = RuntimeError("quota exceeded")
        response = client.post("/content/podcast", headers=HEADERS, json={"owner_id": "alice", "file_id": uploaded["file_id"]})
        body = response.json()
        assert body["degraded"] is True
        assert len(body["segments"]) == 2


class UnreachableEmbedClient(FakeEmbedClient):
    async def do_embed(self, texts):
        raise httpx.ConnectError("connection refused")


class CountFailingRAGClient(RAGClientMemory):
    async def do_existence_check(self) -> bool:
        return True

    async def do_count(self, conditions=None) -> int:
        raise RuntimeError("store corrupted")


def _app_with(helper_config, logger, tmp_path, embed_client, rag_client) -> FastAPI:
    app = FastAPI()
    register_routes(app)
    app.state.config = helper_config
    app.state.logging = logger
    app.state.services = AppServices(
        helper_config,
        llm_client=FakeLLMClient(),
        embed_client=embed_client,
        rag_client=rag_client,
        web_search_client=FakeWebSearchClient(),
        upload_dir=str(tmp_path / "uploads"),
    )
    return app


class TestBackendFailures:
    def test_unreachable_embedder_gives_json_provider_error(self, helper_config, logger, tmp_path):
        app = _app_with(helper_config, logger, tmp_path, UnreachableEmbedClient(), RAGClientMemory(helper_config))
        with TestClient(app) as client:
            uploaded = _upload(client)
            response = client.post(
                "/chat/rag",
                headers=HEADERS,
                json={"owner_id": "alice", "query": "what is covered?", "file_id": uploaded["file_id"]},
            )
        assert response.status_code == 502
        assert response.headers["content-type"].startswith("application/json")
        body = response.json()
        assert body["error"] == "ProviderError"
        assert body["kind"] == "unknown"

    def test_unexpected_error_gives_json_500(self, helper_config, logger, tmp_path):
        app = _app_with(helper_config, logger, tmp_path, FakeEmbedClient(), CountFailingRAGClient(helper_config))
        with TestClient(app, raise_server_exceptions=False) as client:
            response = client.get("/healthz")
        assert response.status_code == 500
        assert response.json() == {"error": "InternalError", "message": "An unexpected error occurred.", "kind": None}
