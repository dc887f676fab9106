"""Pydantic models for TMetric time entries and tool results.

Remote payloads use camelCase keys; the models expose snake_case attributes
and dump back to camelCase with ``by_alias=True``.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class IntegrationType(str, Enum):
    """Issue trackers TMetric can link a task to."""
    GITHUB = "GitHub"
    GITLAB = "GitLab"


class DeleteMode(str, Enum):
    """Which entry delete_time_entry targets."""
    CURRENT = "current"
    LAST = "last"


class EntryType(str, Enum):
    """State of a deleted entry at deletion time."""
    ACTIVE = "active"
    STOPPED = "stopped"


class ErrorCode(str, Enum):
    """Error kinds returned in failed tool results."""
    INITIALIZATION_ERROR = "INITIALIZATION_ERROR"
    TIMER_ALREADY_RUNNING = "TIMER_ALREADY_RUNNING"
    NO_TIMER_RUNNING = "NO_TIMER_RUNNING"
    NO_ENTRIES_FOUND = "NO_ENTRIES_FOUND"
    ENTRY_TOO_OLD = "ENTRY_TOO_OLD"
    INVALID_MODE = "INVALID_MODE"
    API_ERROR = "API_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


# ---------------------------------------------------------------------------
# Shared model config
# ---------------------------------------------------------------------------

_REMOTE_CONFIG = ConfigDict(
    populate_by_name=True,
    extra="ignore",
)


# ---------------------------------------------------------------------------
# Remote records
# ---------------------------------------------------------------------------

class ProjectRef(BaseModel):
    """Project reference embedded in a time entry."""
    model_config = _REMOTE_CONFIG

    id: Optional[int] = None
    name: Optional[str] = None


class ExternalLink(BaseModel):
    """Link from a task to an issue in an external tracker."""
    model_config = _REMOTE_CONFIG

    link: str
    issue_id: str = Field(..., alias="issueId")


class Integration(BaseModel):
    """Issue tracker instance a task belongs to."""
    model_config = _REMOTE_CONFIG

    url: str
    # Kept as a plain string: existing entries may carry trackers beyond GitHub/GitLab.
    type: str


class TaskRef(BaseModel):
    """Task attached to a time entry, optionally linked to an issue."""
    model_config = _REMOTE_CONFIG

    name: Optional[str] = None
    external_link: Optional[ExternalLink] = Field(default=None, alias="externalLink")
    integration: Optional[Integration] = None

    def to_payload(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class TimeEntry(BaseModel):
    """A TMetric time entry. ``end_time is None`` means the timer is running."""
    model_config = _REMOTE_CONFIG

    id: Union[int, str]
    start_time: str = Field(..., alias="startTime")
    end_time: Optional[str] = Field(default=None, alias="endTime")
    project: Optional[ProjectRef] = None
    task: Optional[TaskRef] = None
    note: Optional[str] = None
    tags: list[Any] = Field(default_factory=list)

    @property
    def is_running(self) -> bool:
        return self.end_time is None


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

class TimerInfo(BaseModel):
    """Projection of the running timer returned by get_current_timer."""

    is_running: bool
    timer_id: Optional[Union[int, str]] = None
    task_name: Optional[str] = None
    task_url: Optional[str] = None
    project_name: Optional[str] = None
    project_id: Optional[int] = None
    started_at: Optional[str] = None
    elapsed: Optional[str] = None

    def to_result(self) -> dict:
        return self.model_dump(exclude_none=True)
