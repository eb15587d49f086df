from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from bilidash.core.dependencies import get_chat_service, get_project_service
from bilidash.core.document_store import MemoryDocumentStore
from bilidash.main import app
from bilidash.services.chat.chat_service import ChatService
from bilidash.services.projects.project_service import ProjectService

COVER_BASE_URL = "https://cdn.test/covers/"


class FakeStream:
    def __init__(self, fragments):
        self._fragments = list(fragments)
        self.closed = False

    def __aiter__(self):
        return self._chunks()

    async def _chunks(self):
        for fragment in self._fragments:
            yield SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=fragment))])

    async def close(self):
        self.closed = True


class FakeCompletions:
    def __init__(self, fragments):
        self.fragments = fragments
        self.calls = []
        self.streams = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        stream = FakeStream(self.fragments)
        self.streams.append(stream)
        return stream


class FakeChatClient:
    """Stands in for openai.AsyncOpenAI: chat.completions.create(stream=True)."""

    def __init__(self, fragments=("你好", "", None, "世界")):
        self.completions = FakeCompletions(fragments)
        self.chat = SimpleNamespace(completions=self.completions)
        self.closed = False

    async def close(self):
        self.closed = True


@pytest.fixture
def sample_document():
    return {
        "_id": "proj-1",
        "name": "美食区监测",
        "createTime": "2024-05-01 10:00:00",
        "data": [
            {
                "bvid": "BV1aa",
                "title": "懒人必看美食教程",
                "author": "小厨",
                "play_count": "12345",
                "danmaku_count": 88,
                "duration": "3:45",
                "pubdate": 1700000000,
                "cover": "//i0.hdslb.com/a.jpg",
                "url": "https://www.bilibili.com/video/BV1aa",
            },
            {
                "bvid": "BV1bb",
                "title": "美食探店vlog",
                "uploader": "探店君",
                "view": 2_000_000,
                "reply": "12",
                "length": "1:02:03",
                "publishTime": "2024-01-02 08:00:00",
                "cover": "b.jpg",
            },
            "not-an-entry",
            {"title": "   ", "pubdateText": "3小时前"},
        ],
    }


@pytest.fixture
def store(sample_document):
    return MemoryDocumentStore([sample_document])


@pytest.fixture
def fake_chat_client():
    return FakeChatClient()


@pytest.fixture
def client(store, fake_chat_client):
    app.dependency_overrides[get_project_service] = lambda: ProjectService(store, cover_base_url=COVER_BASE_URL)
    app.dependency_overrides[get_chat_service] = lambda: ChatService(fake_chat_client)
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def make_chat_client():
    return FakeChatClient


@pytest.fixture
def cover_base_url():
    return COVER_BASE_URL
