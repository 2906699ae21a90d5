"""Project API routes — session-scoped, DB-backed."""

import structlog
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select

from design2code.core.auth import SessionUser, require_auth
from design2code.db.base import get_session_factory
from design2code.db.models.project import Project as ProjectRow
from design2code.schemas.projects import Project, ProjectSpec

logger = structlog.get_logger(__name__)

router = APIRouter()


def _to_schema(row: ProjectRow) -> Project:
    return Project(
        id=row.id,
        name=row.name,
        description=row.description,
        language=row.language,
        code=row.code,
        created_at=row.created_at,
    )


@router.get("", response_model=list[Project])
async def list_projects(user: SessionUser = Depends(require_auth)):
    """List the caller's projects, most recent first."""
    factory = get_session_factory()
    async with factory() as session:
        result = await session.execute(
            select(ProjectRow)
            .where(ProjectRow.user_id == user.user_id)
            .order_by(ProjectRow.created_at.desc())
        )
        return [_to_schema(p) for p in result.scalars().all()]


@router.post("", response_model=Project, status_code=201)
async def create_project(request: ProjectSpec, user: SessionUser = Depends(require_auth)):
    """Create a project. The server assigns id and createdAt."""
    factory = get_session_factory()
    async with factory() as session:
        project = ProjectRow(
            user_id=user.user_id,
            name=request.name,
            description=request.description,
            language=request.language.value,
            code=request.code,
        )
        session.add(project)
        await session.commit()
        await session.refresh(project)

        logger.info("project_created", project_id=project.id, user_id=user.user_id)
        return _to_schema(project)


@router.delete("/{project_id}")
async def delete_project(project_id: str, user: SessionUser = Depends(require_auth)):
    """Hard-delete a project. 404 if absent, 401 if owned by someone else."""
    factory = get_session_factory()
    async with factory() as session:
        result = await session.execute(select(ProjectRow).where(ProjectRow.id == project_id))
        project = result.scalar_one_or_none()
        if project is None:
            raise HTTPException(status_code=404, detail="Project not found")
        if project.user_id != user.user_id:
            raise HTTPException(status_code=401, detail="Not the owner of this project")

        await session.delete(project)
        await session.commit()

        logger.info("project_deleted", project_id=project_id, user_id=user.user_id)
        return {"status": "deleted"}
