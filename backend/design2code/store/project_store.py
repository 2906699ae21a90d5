"""ProjectStore — the user's projects and plan across guest and signed-in modes.

Architecture:
- Session status picks the source of truth: RemoteBackend when
  authenticated, LocalBackend for guests, nothing while loading
- The project collection lives in an in-memory cache, most recent first;
  list_projects() never touches the network
- Mutations are attempt-then-apply: the remote call (signed-in only) settles,
  then the cache is updated whether or not the call succeeded
- Every guest state change overwrites the local records in full
- Guest plan expiry is checked on load, plan change and explicit reconcile();
  there is no timer
- Concurrent mutations are not serialized; each applies to the cache as it
  is when that mutation settles

Non-fatal: backend failures are logged and reported through MutationResult,
never raised to the caller.
"""

import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from enum import Enum

import structlog

from design2code.core.config import get_settings
from design2code.core.exceptions import LocalStoreError, RemoteBackendError
from design2code.core.logging import bind_session_status
from design2code.domain.plans import (
    PRO_PLAN_DURATION,
    PlanState,
    PlanTier,
    change_plan,
    parse_tier,
    reconcile_expiry,
)
from design2code.schemas.projects import Project, ProjectSpec
from design2code.schemas.session import SessionSnapshot, SessionStatus, SessionUser
from design2code.store.local import LocalBackend
from design2code.store.remote import RemoteBackend
from design2code.store.session import SessionObserver
from design2code.store.storage import FileStorage, KeyValueStorage

logger = structlog.get_logger(__name__)


class MutationOutcome(str, Enum):
    """Where a create/delete actually landed."""

    REMOTE_APPLIED = "remote_applied"
    LOCAL_FALLBACK_APPLIED = "local_fallback_applied"


@dataclass(frozen=True)
class MutationResult:
    """Result of a create or delete.

    ``error`` is set when a remote attempt failed and the cache was updated
    anyway; it is None for guest mutations, which never try the remote.
    """

    outcome: MutationOutcome
    project: Project | None = None
    error: str | None = None

    @property
    def remote_applied(self) -> bool:
        return self.outcome == MutationOutcome.REMOTE_APPLIED


@dataclass(frozen=True)
class ProjectsView:
    """Read-only snapshot handed to subscribers."""

    projects: tuple[Project, ...]
    user_plan: PlanTier
    plan_expiry_date: datetime | None
    is_loading: bool


ViewListener = Callable[[ProjectsView], None]


class ProjectStore:
    """Projects and plan state for one user on one device.

    Public API:
        list_projects() -> list[Project]
        create_project(spec) -> MutationResult
        delete_project(project_id) -> MutationResult
        set_plan(tier) -> PlanState
        reconcile() -> PlanState
        handle_session(snapshot) / attach(observer)
        subscribe(listener) -> unsubscribe
        aclose()
    """

    def __init__(
        self,
        local: LocalBackend,
        remote: RemoteBackend | None = None,
        clock: Callable[[], datetime] | None = None,
        plan_duration: timedelta = PRO_PLAN_DURATION,
        id_factory: Callable[[], str] | None = None,
    ) -> None:
        self.local = local
        self.remote = remote
        self._clock = clock or (lambda: datetime.now(UTC))
        self._plan_duration = plan_duration
        self._id_factory = id_factory or (lambda: str(uuid.uuid4()))

        self._status: SessionStatus | None = None
        self._projects: list[Project] = []
        self._plan = PlanState()
        self._is_loading = True
        self._initialized = False
        self._listeners: list[ViewListener] = []

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @property
    def status(self) -> SessionStatus | None:
        return self._status

    @property
    def projects(self) -> tuple[Project, ...]:
        return tuple(self._projects)

    @property
    def plan(self) -> PlanState:
        return self._plan

    @property
    def user_plan(self) -> PlanTier:
        return self._plan.tier

    @property
    def plan_expiry_date(self) -> datetime | None:
        return self._plan.expiry_date

    @property
    def is_loading(self) -> bool:
        return self._is_loading

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    @property
    def is_guest(self) -> bool:
        return self._status == SessionStatus.UNAUTHENTICATED

    def list_projects(self) -> list[Project]:
        """Return the cached collection, most recent first."""
        return list(self._projects)

    def view(self) -> ProjectsView:
        return ProjectsView(
            projects=tuple(self._projects),
            user_plan=self._plan.tier,
            plan_expiry_date=self._plan.expiry_date,
            is_loading=self._is_loading,
        )

    def subscribe(self, listener: ViewListener) -> Callable[[], None]:
        """Call ``listener`` with a fresh view after every state change."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        view = self.view()
        for listener in list(self._listeners):
            listener(view)

    # ------------------------------------------------------------------
    # Session handling and reload
    # ------------------------------------------------------------------

    async def attach(self, observer: SessionObserver) -> Callable[[], None]:
        """Follow ``observer`` and apply its current snapshot right away."""
        unsubscribe = observer.subscribe(self.handle_session)
        await self.handle_session(observer.snapshot)
        return unsubscribe

    async def handle_session(self, snapshot: SessionSnapshot) -> None:
        """React to a session snapshot.

        The signed-in plan is copied on every snapshot. Projects are reloaded
        only when the status itself changes.
        """
        previous = self._status
        self._status = snapshot.status

        if snapshot.status == SessionStatus.AUTHENTICATED and snapshot.user is not None:
            self._apply_session_plan(snapshot.user)

        if snapshot.status == previous:
            self._notify()
            return

        # Nothing is persisted until the new backend has been read
        self._initialized = False
        bind_session_status(snapshot.status.value)
        logger.info(
            "session_status_changed",
            previous=previous.value if previous else None,
            status=snapshot.status.value,
        )
        await self.reload()

    def _apply_session_plan(self, user: SessionUser) -> None:
        tier = parse_tier(user.plan)
        if tier is None:
            if user.plan is not None:
                logger.warning("session_plan_unknown_tier", user_id=user.id, value=user.plan)
            tier = PlanTier.STARTER

        expiry = user.plan_expiry_date if tier != PlanTier.STARTER else None
        self._plan = PlanState(tier=tier, expiry_date=expiry)

    async def reload(self) -> None:
        """Reload the collection from the backend matching the current status."""
        self._is_loading = True
        status = self._status
        if status is None or status == SessionStatus.LOADING:
            self._notify()
            return

        self._notify()
        if status == SessionStatus.AUTHENTICATED:
            await self._load_remote()
        else:
            await self._load_local()

        self._is_loading = False
        self._initialized = True

        if self.is_guest:
            self._reconcile_plan()
            await self._persist_guest_state()
        self._notify()

    async def _load_remote(self) -> None:
        if self.remote is None:
            logger.warning("remote_backend_not_configured", action="keep_cached_projects")
            return
        try:
            self._projects = await self.remote.list_projects()
        except RemoteBackendError as exc:
            # Cache is left as it was
            logger.error(
                "remote_list_failed",
                status_code=exc.status_code,
                error=str(exc),
            )
            return
        logger.info("remote_projects_loaded", count=len(self._projects))

    async def _load_local(self) -> None:
        self._projects = await self.local.load_projects()
        self._plan = await self.local.load_plan()
        logger.info(
            "local_projects_loaded",
            count=len(self._projects),
            plan=self._plan.tier.value,
        )

    # ------------------------------------------------------------------
    # Plan lifecycle
    # ------------------------------------------------------------------

    async def set_plan(self, tier: PlanTier | str) -> PlanState:
        """Change the plan tier. Pro restarts the expiry clock.

        An unknown tier is logged and the current plan is kept.
        """
        requested = tier
        tier = parse_tier(requested)
        if tier is None:
            logger.warning("plan_change_rejected", value=str(requested), tier=self._plan.tier.value)
            return self._plan

        self._plan = change_plan(self._plan, tier, now=self._clock(), duration=self._plan_duration)
        logger.info(
            "plan_changed",
            tier=tier.value,
            expiry_date=self._plan.expiry_date.isoformat() if self._plan.expiry_date else None,
            guest=self.is_guest,
        )

        self._reconcile_plan()
        await self._after_change()
        return self._plan

    async def reconcile(self) -> PlanState:
        """Run the guest expiry check now and persist any downgrade."""
        if self._reconcile_plan():
            await self._after_change()
        return self._plan

    def _reconcile_plan(self) -> bool:
        """Collapse an expired guest plan. Returns True if the plan changed."""
        if not (self.is_guest and self._initialized):
            return False

        reconciled = reconcile_expiry(self._plan, now=self._clock())
        if reconciled is self._plan:
            return False

        logger.info(
            "guest_plan_expired",
            tier=self._plan.tier.value,
            expiry_date=self._plan.expiry_date.isoformat() if self._plan.expiry_date else None,
        )
        self._plan = reconciled
        return True

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def create_project(self, spec: ProjectSpec) -> MutationResult:
        """Create a project, remotely when signed in, locally otherwise or on failure."""
        error: str | None = None

        if self._status == SessionStatus.AUTHENTICATED:
            if self.remote is None:
                error = "remote backend not configured"
            else:
                try:
                    project = await self.remote.create_project(spec)
                except RemoteBackendError as exc:
                    error = str(exc)
                    logger.warning(
                        "remote_create_failed",
                        status_code=exc.status_code,
                        error=error,
                        action="local_fallback",
                    )
                else:
                    self._projects = [project, *self._projects]
                    await self._after_change()
                    return MutationResult(MutationOutcome.REMOTE_APPLIED, project=project)

        project = Project(
            id=self._id_factory(),
            created_at=self._clock(),
            **spec.model_dump(),
        )
        self._projects = [project, *self._projects]
        await self._after_change()
        return MutationResult(MutationOutcome.LOCAL_FALLBACK_APPLIED, project=project, error=error)

    async def delete_project(self, project_id: str) -> MutationResult:
        """Delete a project. The id leaves the cache even if the remote call fails."""
        error: str | None = None
        outcome = MutationOutcome.LOCAL_FALLBACK_APPLIED

        if self._status == SessionStatus.AUTHENTICATED:
            if self.remote is None:
                error = "remote backend not configured"
            else:
                try:
                    await self.remote.delete_project(project_id)
                except RemoteBackendError as exc:
                    error = str(exc)
                    logger.warning(
                        "remote_delete_failed",
                        project_id=project_id,
                        status_code=exc.status_code,
                        error=error,
                        action="local_fallback",
                    )
                else:
                    outcome = MutationOutcome.REMOTE_APPLIED

        self._projects = [p for p in self._projects if p.id != project_id]
        await self._after_change()
        return MutationResult(outcome, error=error)

    # ------------------------------------------------------------------
    # Guest persistence
    # ------------------------------------------------------------------

    async def _after_change(self) -> None:
        await self._persist_guest_state()
        self._notify()

    async def _persist_guest_state(self) -> None:
        """Overwrite the guest records with the current cache and plan."""
        if not (self.is_guest and self._initialized):
            return
        try:
            await self.local.save_projects(self._projects)
            await self.local.save_plan(self._plan)
        except LocalStoreError as exc:
            logger.error("local_persist_failed", error=str(exc))

    async def aclose(self) -> None:
        """Close the remote backend's HTTP client, if any."""
        if self.remote is not None:
            await self.remote.aclose()


def build_project_store(
    session_token: str | None = None,
    storage: KeyValueStorage | None = None,
) -> ProjectStore:
    """Wire a ProjectStore from settings: file storage plus the configured API."""
    settings = get_settings()
    storage = storage or FileStorage(settings.local_storage_path)
    return ProjectStore(
        local=LocalBackend(storage, prefix=settings.storage_prefix),
        remote=RemoteBackend.from_settings(session_token),
        plan_duration=timedelta(days=settings.pro_plan_days),
    )
