"""Local Backend: guest projects and plan in device-local storage.

Three records live under ``<prefix>_projects``, ``<prefix>_plan`` and
``<prefix>_expiry``. Reads are fail-soft: corrupt or unreadable records are
logged and treated as empty/absent. Writes overwrite a record in full.
"""

from datetime import UTC, datetime

import structlog
from pydantic import ValidationError

from design2code.core.exceptions import LocalStoreError
from design2code.domain.plans import PlanState, PlanTier, parse_tier
from design2code.schemas.projects import Project, ProjectList
from design2code.store.storage import KeyValueStorage

logger = structlog.get_logger(__name__)


class LocalBackend:
    """Reads and writes the guest records of one device."""

    def __init__(self, storage: KeyValueStorage, prefix: str = "design2code"):
        self.storage = storage
        self.projects_key = f"{prefix}_projects"
        self.plan_key = f"{prefix}_plan"
        self.expiry_key = f"{prefix}_expiry"

    async def _get(self, key: str) -> str | None:
        try:
            return await self.storage.get_item(key)
        except LocalStoreError as exc:
            logger.error("local_storage_read_failed", key=key, error=str(exc))
            return None

    async def load_projects(self) -> list[Project]:
        """Return the stored collection, or [] when absent or unparseable."""
        raw = await self._get(self.projects_key)
        if raw is None:
            return []
        try:
            return ProjectList.validate_json(raw)
        except ValidationError as exc:
            logger.error(
                "local_projects_parse_failed",
                key=self.projects_key,
                error_count=exc.error_count(),
            )
            return []

    async def load_plan(self) -> PlanState:
        """Return the stored plan. Unknown tiers read as starter, bad expiry as None."""
        raw_tier = await self._get(self.plan_key)
        raw_expiry = await self._get(self.expiry_key)

        tier = parse_tier(raw_tier)
        if tier is None:
            if raw_tier is not None:
                logger.warning("local_plan_unknown_tier", value=raw_tier)
            tier = PlanTier.STARTER

        expiry = None
        if raw_expiry is not None:
            expiry = _parse_expiry(raw_expiry)
            if expiry is None:
                logger.warning("local_plan_bad_expiry", value=raw_expiry)

        if tier == PlanTier.STARTER:
            expiry = None
        return PlanState(tier=tier, expiry_date=expiry)

    async def save_projects(self, projects: list[Project]) -> None:
        payload = ProjectList.dump_json(projects, by_alias=True).decode("utf-8")
        await self.storage.set_item(self.projects_key, payload)

    async def save_plan(self, plan: PlanState) -> None:
        await self.storage.set_item(self.plan_key, plan.tier.value)
        if plan.expiry_date is not None:
            await self.storage.set_item(self.expiry_key, plan.expiry_date.isoformat())
        else:
            await self.storage.remove_item(self.expiry_key)


def _parse_expiry(value: str) -> datetime | None:
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed
