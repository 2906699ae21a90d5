"""Project store: guest/remote backends, session observer and the store façade."""

from design2code.store.local import LocalBackend
from design2code.store.project_store import (
    MutationOutcome,
    MutationResult,
    ProjectStore,
    ProjectsView,
    build_project_store,
)
from design2code.store.remote import RemoteBackend
from design2code.store.session import HttpSessionObserver, SessionObserver
from design2code.store.storage import FileStorage, KeyValueStorage, RedisStorage

__all__ = [
    "FileStorage",
    "HttpSessionObserver",
    "KeyValueStorage",
    "LocalBackend",
    "MutationOutcome",
    "MutationResult",
    "ProjectStore",
    "ProjectsView",
    "RedisStorage",
    "RemoteBackend",
    "SessionObserver",
    "build_project_store",
]
