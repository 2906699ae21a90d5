"""Project schemas shared by the projects API and the project store.

The wire and storage format uses ``createdAt`` (ISO-8601); Python code
uses ``created_at``.
"""

from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator

# "Oct 19, 2026, 08:24 PM"
DISPLAY_FORMAT = "%b %d, %Y, %I:%M %p"


class Language(str, Enum):
    """Target framework of the generated code."""

    REACT = "react"
    VUE = "vue"
    HTML = "html"


class ProjectSpec(BaseModel):
    """The four caller-supplied fields of a new project."""

    name: str
    description: str = ""
    language: Language
    code: str


class Project(ProjectSpec):
    """A stored project. Immutable once created."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    created_at: datetime = Field(alias="createdAt")

    @field_validator("created_at")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        # SQLite and some clients hand back naive timestamps
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value

    @property
    def display_created_at(self) -> str:
        """createdAt rendered for display in the local timezone."""
        return format_display_timestamp(self.created_at)

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


ProjectList = TypeAdapter(list[Project])


def format_display_timestamp(value: datetime) -> str:
    return value.astimezone().strftime(DISPLAY_FORMAT)
