from fastapi import APIRouter

from design2code.api.routes import health, projects, session

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])
api_router.include_router(session.router, tags=["session"])
api_router.include_router(projects.router, prefix="/projects", tags=["projects"])
