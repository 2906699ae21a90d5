"""Remote Backend: the session-scoped projects API over HTTP.

Thin adapter. No retry, no caching and no fallback here; transport errors
and non-2xx answers surface as RemoteBackendError and the project store
decides what to do with them.
"""

import httpx
import structlog
from pydantic import ValidationError

from design2code.core.config import get_settings
from design2code.core.exceptions import RemoteBackendError
from design2code.schemas.projects import Project, ProjectList, ProjectSpec

logger = structlog.get_logger(__name__)


class RemoteBackend:
    """Client for ``/projects`` on the API, authenticated by the caller's client."""

    def __init__(self, client: httpx.AsyncClient):
        """Initialize with a client whose base_url points at the API root.

        Args:
            client: AsyncClient carrying base_url and the session's auth header
        """
        self.client = client

    @classmethod
    def from_settings(cls, session_token: str | None = None) -> "RemoteBackend":
        settings = get_settings()
        headers = {}
        if session_token:
            headers["Authorization"] = f"Bearer {session_token}"
        client = httpx.AsyncClient(
            base_url=settings.api_base_url,
            headers=headers,
            timeout=settings.http_timeout_seconds,
        )
        return cls(client)

    async def aclose(self) -> None:
        await self.client.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            response = await self.client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            raise RemoteBackendError(f"{method} {path} failed: {exc}") from exc

        if not response.is_success:
            raise RemoteBackendError(
                f"{method} {path} returned {response.status_code}",
                status_code=response.status_code,
            )
        return response

    async def list_projects(self) -> list[Project]:
        response = await self._request("GET", "/projects")
        try:
            return ProjectList.validate_json(response.content)
        except ValidationError as exc:
            raise RemoteBackendError(f"GET /projects returned malformed body: {exc}") from exc

    async def create_project(self, spec: ProjectSpec) -> Project:
        response = await self._request("POST", "/projects", json=spec.model_dump(mode="json"))
        try:
            return Project.model_validate_json(response.content)
        except ValidationError as exc:
            raise RemoteBackendError(f"POST /projects returned malformed body: {exc}") from exc

    async def delete_project(self, project_id: str) -> None:
        await self._request("DELETE", f"/projects/{project_id}")
        logger.debug("remote_project_deleted", project_id=project_id)
