import json

import httpx
import pytest
from fastapi.testclient import TestClient

from core.config import settings
from main import app
from routes import video_routes
from services.download_proxy import DownloadProxy
from services.veo_service import VeoService

SECRET = "test-secret-key"
OPERATION_NAME = "models/veo-2.0-generate-001/operations/op123"
VIDEO_URI = "https://generativelanguage.googleapis.com/v1beta/files/abc:download?alt=media"
VIDEO_BYTES = b"\x00\x00\x00\x18ftypmp42" + b"x" * 64


def done_operation(*uris: str) -> dict:
    samples = [{"video": {"uri": uri}} for uri in uris]
    return {
        "name": OPERATION_NAME,
        "done": True,
        "response": {"generateVideoResponse": {"generatedSamples": samples}},
    }


class FakeUpstream:
    """Simula a API do Veo e o storage dos vídeos, registrando cada requisição."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.pending_polls = 1
        self.final_operation = done_operation(VIDEO_URI)
        self.submit_response: httpx.Response | None = None
        self.files: dict[str, httpx.Response] = {}

    def calls(self, method: str, fragment: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == method and fragment in str(r.url)]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path.endswith(":predictLongRunning"):
            return self.submit_response or httpx.Response(200, json={"name": OPERATION_NAME})
        if path.endswith("/operations/op123"):
            if self.pending_polls > 0:
                self.pending_polls -= 1
                return httpx.Response(200, json={"name": OPERATION_NAME, "metadata": {"progress": 50}})
            return httpx.Response(200, json=self.final_operation)
        if "/files/" in path:
            file_id = path.rsplit("/", 1)[-1]
            if file_id in self.files:
                return self.files[file_id]
            return httpx.Response(
                200,
                content=VIDEO_BYTES,
                headers={
                    "Content-Type": "video/mp4",
                    "Content-Length": str(len(VIDEO_BYTES)),
                    "Accept-Ranges": "bytes",
                },
            )
        return httpx.Response(404, json={"error": {"code": 404, "message": "not found"}})

    @staticmethod
    def body(request: httpx.Request) -> dict:
        return json.loads(request.content)


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
def api_key(monkeypatch) -> str:
    monkeypatch.setattr(settings, "API_KEY", SECRET)
    return SECRET


@pytest.fixture
def no_api_key(monkeypatch) -> None:
    monkeypatch.setattr(settings, "API_KEY", None)


@pytest.fixture
def app_with_upstream(upstream: FakeUpstream):
    transport = httpx.MockTransport(upstream)
    app.dependency_overrides[video_routes.get_veo_service] = lambda: VeoService(transport=transport)
    app.dependency_overrides[video_routes.get_download_proxy] = lambda: DownloadProxy(transport=transport)
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(app_with_upstream) -> TestClient:
    return TestClient(app_with_upstream)
