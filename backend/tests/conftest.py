"""Shared test fixtures for all test groups."""

import json
from datetime import UTC, datetime, timedelta

import httpx
import pytest
from fakeredis import FakeAsyncRedis

from design2code.schemas.projects import Language, ProjectSpec
from design2code.store.local import LocalBackend
from design2code.store.project_store import ProjectStore
from design2code.store.remote import RemoteBackend
from design2code.store.storage import RedisStorage

T0 = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


class FakeClock:
    """Manually advanced clock, callable like ``datetime.now``."""

    def __init__(self, start: datetime = T0):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class FakeProjectsApi:
    """In-memory stand-in for the projects API, served through httpx.MockTransport.

    Set ``fail_with`` to a status code or ``raise_error`` to True to make
    every request fail.
    """

    def __init__(self):
        self.projects: list[dict] = []
        self.calls: list[tuple[str, str]] = []
        self.fail_with: int | None = None
        self.raise_error = False
        self._counter = 0

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append((request.method, request.url.path))

        if self.raise_error:
            raise httpx.ConnectError("connection refused", request=request)
        if self.fail_with is not None:
            return httpx.Response(self.fail_with, json={"detail": "failure"})

        path = request.url.path
        if path == "/api/projects" and request.method == "GET":
            return httpx.Response(200, json=list(self.projects))

        if path == "/api/projects" and request.method == "POST":
            self._counter += 1
            body = json.loads(request.content)
            project = {
                "id": f"srv-{self._counter}",
                **body,
                "createdAt": (T0 + timedelta(minutes=self._counter)).isoformat(),
            }
            self.projects.insert(0, project)
            return httpx.Response(201, json=project)

        if path.startswith("/api/projects/") and request.method == "DELETE":
            project_id = path.rsplit("/", 1)[1]
            if not any(p["id"] == project_id for p in self.projects):
                return httpx.Response(404, json={"detail": "Project not found"})
            self.projects = [p for p in self.projects if p["id"] != project_id]
            return httpx.Response(200, json={"status": "deleted"})

        return httpx.Response(404, json={"detail": "Not Found"})

    def seed(self, name: str, language: str = "html") -> dict:
        self._counter += 1
        project = {
            "id": f"srv-{self._counter}",
            "name": name,
            "description": "",
            "language": language,
            "code": "<div/>",
            "createdAt": (T0 + timedelta(minutes=self._counter)).isoformat(),
        }
        self.projects.insert(0, project)
        return project


def _make_spec(name: str = "Landing page", language: Language = Language.REACT) -> ProjectSpec:
    return ProjectSpec(
        name=name,
        description=f"{name} description",
        language=language,
        code=f"export default function {name.replace(' ', '')}() {{ return null }}",
    )


@pytest.fixture
async def redis():
    """Create a fake Redis instance for testing."""
    fake_redis = FakeAsyncRedis(decode_responses=True)
    yield fake_redis
    await fake_redis.flushall()
    await fake_redis.aclose()


@pytest.fixture
def storage(redis):
    return RedisStorage(redis)


@pytest.fixture
def local_backend(storage):
    return LocalBackend(storage)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def fake_api():
    return FakeProjectsApi()


@pytest.fixture
async def remote(fake_api):
    client = httpx.AsyncClient(
        transport=httpx.MockTransport(fake_api),
        base_url="http://test/api",
    )
    yield RemoteBackend(client)
    await client.aclose()


@pytest.fixture
def make_store(local_backend, remote, clock):
    """Factory for stores sharing one device storage, API and clock (a 're-mount')."""

    def _make() -> ProjectStore:
        return ProjectStore(local=local_backend, remote=remote, clock=clock)

    return _make


@pytest.fixture
def store(make_store):
    return make_store()


@pytest.fixture
def make_spec():
    """Factory for ProjectSpec payloads."""
    return _make_spec
