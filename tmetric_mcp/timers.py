"""Timer lifecycle on top of TMetric time entries.

TMetric has no notion of "the timer": a timer is today's time entry whose
endTime is null. Every operation re-reads today's entries so the answer
always reflects the service, which other clients may change at any time.

Public ``TimerService`` methods return result dicts and do not raise for
remote or account failures; see ``tmetric_mcp.formatting.error_result``.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable

import httpx

from tmetric_mcp.client import TMetricAPIError, TMetricClient
from tmetric_mcp.formatting import error_result
from tmetric_mcp.issues import build_task
from tmetric_mcp.models import (
    DeleteMode,
    EntryType,
    ErrorCode,
    TimeEntry,
    TimerInfo,
)
from tmetric_mcp.session import InitializationError, Session
from tmetric_mcp.timing import (
    format_duration,
    format_elapsed,
    format_local_timestamp,
    local_now,
    minutes_between,
    parse_timestamp,
)

logger = logging.getLogger(__name__)

NO_DESCRIPTION = "No description"
NO_PROJECT = "No project"

# A stopped entry may be deleted with mode="last" for this many minutes.
DELETE_WINDOW_MINUTES = 5

# Failures of a remote read/write, reported as API_ERROR. ValueError covers
# malformed payloads, pydantic.ValidationError included.
REMOTE_ERRORS = (TMetricAPIError, httpx.HTTPError, ValueError)


def task_display_name(entry: TimeEntry) -> str:
    """Task name, else the entry note, else a placeholder."""
    if entry.task and entry.task.name:
        return entry.task.name
    if entry.note:
        return entry.note
    return NO_DESCRIPTION


def build_stop_payload(entry: TimeEntry, end_time: str) -> dict:
    """Replacement body that closes ``entry`` at ``end_time``.

    Only the fields TMetric needs are sent; the task keeps its issue link.
    """
    body: dict = {
        "startTime": entry.start_time,
        "endTime": end_time,
        "tags": list(entry.tags),
    }
    if entry.project is not None and entry.project.id is not None:
        body["project"] = {"id": entry.project.id}

    if entry.task is not None and entry.task.name:
        task: dict = {"name": entry.task.name}
        if entry.task.external_link is not None:
            task["externalLink"] = entry.task.external_link.model_dump(by_alias=True)
        if entry.task.integration is not None:
            task["integration"] = entry.task.integration.model_dump(by_alias=True)
        body["task"] = task
    elif entry.note:
        body["note"] = entry.note
    return body


class TimerService:
    """Start, stop, inspect and delete the TMetric timer of one account."""

    def __init__(
        self,
        session: Session,
        clock: Callable[[], datetime] = local_now,
    ) -> None:
        self.session = session
        self._clock = clock

    @property
    def client(self) -> TMetricClient:
        return self.session.client

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def _today_entries(self, now: datetime) -> list[TimeEntry]:
        account_id = await self.session.resolve()
        today = now.date().isoformat()
        raw = await self.client.get_time_entries(account_id, today, today)
        return [TimeEntry.model_validate(item) for item in raw]

    def _started(self, entry: TimeEntry) -> datetime:
        return parse_timestamp(entry.start_time)

    async def find_active_entry(self, now: datetime | None = None) -> TimeEntry | None:
        """Today's running entry (endTime null), or None.

        If the service reports several running entries, the one started
        last wins.
        """
        now = now or self._clock()
        running = [e for e in await self._today_entries(now) if e.is_running]
        if not running:
            return None
        if len(running) > 1:
            logger.warning(
                f"{len(running)} running time entries today "
                f"({', '.join(str(e.id) for e in running)}); using the latest"
            )
        return max(running, key=self._started)

    async def find_last_entry(self, now: datetime | None = None) -> TimeEntry | None:
        """Today's entry with the latest startTime, running or not.

        On equal startTime the entry listed first by the service wins.
        """
        now = now or self._clock()
        entries = await self._today_entries(now)
        if not entries:
            return None
        return max(entries, key=self._started)

    async def current_timer(self) -> TimerInfo:
        """Project the running entry into a TimerInfo.

        Raises:
            InitializationError: the account could not be resolved.
            TMetricAPIError, httpx.HTTPError: the entries could not be read.
            ValueError: an entry or its timestamps are malformed.
        """
        now = self._clock()
        entry = await self.find_active_entry(now)
        if entry is None:
            return TimerInfo(is_running=False)

        task_url = None
        if entry.task is not None and entry.task.external_link is not None:
            task_url = entry.task.external_link.link

        return TimerInfo(
            is_running=True,
            timer_id=entry.id,
            task_name=task_display_name(entry),
            task_url=task_url,
            project_name=(entry.project.name if entry.project else None) or NO_PROJECT,
            project_id=entry.project.id if entry.project else None,
            started_at=entry.start_time,
            elapsed=format_elapsed(minutes_between(self._started(entry), now)),
        )

    # ------------------------------------------------------------------
    # Tool operations
    # ------------------------------------------------------------------

    async def list_projects(self) -> dict:
        """Projects the account can track time on, as {id, name} pairs."""
        try:
            account_id = await self.session.resolve()
            projects = await self.client.get_projects(account_id)
        except InitializationError as e:
            return error_result(ErrorCode.INITIALIZATION_ERROR, str(e))
        except REMOTE_ERRORS as e:
            return self._api_error("Failed to list projects", e)

        return {
            "success": True,
            "projects": [{"id": p.get("id"), "name": p.get("name")} for p in projects],
        }

    async def get_current_timer(self) -> dict:
        try:
            info = await self.current_timer()
        except InitializationError as e:
            return error_result(ErrorCode.INITIALIZATION_ERROR, str(e))
        except REMOTE_ERRORS as e:
            return self._api_error("Failed to get current timer", e)
        return info.to_result()

    async def start_timer(
        self,
        project_id: int,
        task_name: str,
        task_url: str | None = None,
    ) -> dict:
        """Start a timer unless one is already running.

        The running check is a read against the service right before the
        create; two processes racing on one account can both pass it.
        """
        try:
            current = await self.current_timer()
            if current.is_running:
                return error_result(
                    ErrorCode.TIMER_ALREADY_RUNNING,
                    "Cannot start new timer. A timer is already running.",
                    current_timer=current.to_result(),
                )

            task = build_task(task_name, task_url)
            body = {
                # null start means "now" to TMetric
                "startTime": None,
                "endTime": None,
                "project": {"id": project_id},
                "task": task.to_payload(),
                "tags": [],
            }
            account_id = await self.session.resolve()
            created = await self.client.create_time_entry(account_id, body)
        except InitializationError as e:
            return error_result(ErrorCode.INITIALIZATION_ERROR, str(e))
        except REMOTE_ERRORS as e:
            return self._api_error("Failed to start timer", e)

        logger.info(f"Started timer {created.get('id')} on project {project_id}: {task_name}")
        return {
            "success": True,
            "timer_id": created.get("id"),
            "started_at": created.get("startTime"),
            "task_name": task_name,
        }

    async def stop_timer(self) -> dict:
        """Close the running entry at the current local time."""
        try:
            now = self._clock()
            entry = await self.find_active_entry(now)
            if entry is None:
                return error_result(ErrorCode.NO_TIMER_RUNNING, "No active timer to stop")

            end_time = format_local_timestamp(now)
            body = build_stop_payload(entry, end_time)
            account_id = await self.session.resolve()
            await self.client.update_time_entry(account_id, entry.id, body)
            minutes = minutes_between(self._started(entry), now)
        except InitializationError as e:
            return error_result(ErrorCode.INITIALIZATION_ERROR, str(e))
        except REMOTE_ERRORS as e:
            return self._api_error("Failed to stop timer", e)

        logger.info(f"Stopped timer {entry.id} after {format_duration(minutes)}")
        return {
            "success": True,
            "time_spent": format_duration(minutes),
            "time_spent_minutes": minutes,
            "started_at": entry.start_time,
            "ended_at": end_time,
            "task_name": task_display_name(entry),
        }

    async def delete_time_entry(self, mode: DeleteMode | str = DeleteMode.CURRENT) -> dict:
        """Delete the running entry, or today's latest entry.

        ``mode="last"`` refuses entries stopped more than
        DELETE_WINDOW_MINUTES ago.
        """
        try:
            mode = DeleteMode(mode)
        except ValueError:
            valid = ", ".join(repr(m.value) for m in DeleteMode)
            return error_result(
                ErrorCode.INVALID_MODE, f"Invalid deletion mode {mode!r}; expected one of {valid}"
            )

        stopped_ago = None
        try:
            if mode == DeleteMode.CURRENT:
                current = await self.current_timer()
                if not current.is_running:
                    return error_result(ErrorCode.NO_TIMER_RUNNING, "No active timer to delete")
                target_id = current.timer_id
                entry_type = EntryType.ACTIVE
            else:
                now = self._clock()
                entry = await self.find_last_entry(now)
                if entry is None:
                    return error_result(
                        ErrorCode.NO_ENTRIES_FOUND, "No time entries found for today"
                    )

                if entry.end_time is not None:
                    ended = parse_timestamp(entry.end_time)
                    minutes_ago = minutes_between(ended, now)
                    if minutes_ago > DELETE_WINDOW_MINUTES:
                        logger.warning(
                            f"Refusing to delete entry {entry.id}: stopped {minutes_ago} minutes ago"
                        )
                        return error_result(
                            ErrorCode.ENTRY_TOO_OLD,
                            f"Last entry stopped {minutes_ago} minutes ago. "
                            "Use the TMetric web app to delete specific entries.",
                        )
                    entry_type = EntryType.STOPPED
                    stopped_ago = f"{minutes_ago}m"
                else:
                    entry_type = EntryType.ACTIVE
                target_id = entry.id

            account_id = await self.session.resolve()
            await self.client.delete_time_entry(account_id, target_id)
        except InitializationError as e:
            return error_result(ErrorCode.INITIALIZATION_ERROR, str(e))
        except REMOTE_ERRORS as e:
            return self._api_error("Failed to delete entry", e)

        logger.info(f"Deleted {entry_type.value} time entry {target_id}")
        result = {
            "success": True,
            "deleted": target_id,
            "entry_type": entry_type.value,
        }
        if stopped_ago is not None:
            result["stopped_ago"] = stopped_ago
        return result

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _api_error(action: str, e: Exception) -> dict:
        logger.warning(f"{action}: {e}")
        return error_result(ErrorCode.API_ERROR, f"{action}: {e}")
