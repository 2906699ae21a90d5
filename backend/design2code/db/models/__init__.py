"""Re-export all models so Base.metadata sees them."""

from design2code.db.models.project import Project
from design2code.db.models.user import User

__all__ = [
    "Project",
    "User",
]
