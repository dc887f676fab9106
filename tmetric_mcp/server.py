"""TMetric MCP Server — timer control for Claude.

Exposes five tools to start, stop, inspect and delete TMetric timers.
Designed for use as a stdio MCP server in Claude Desktop or Claude Code.

Usage:
    python -m tmetric_mcp          # stdio transport (default)
    uv run python -m tmetric_mcp   # via uv
"""

import logging
from contextlib import asynccontextmanager
from typing import Annotated, AsyncIterator, Optional

from fastmcp import FastMCP, Context
from pydantic import Field

from tmetric_mcp.client import TMetricClient
from tmetric_mcp.formatting import error_result, format_json
from tmetric_mcp.models import DeleteMode, ErrorCode
from tmetric_mcp.session import Session
from tmetric_mcp.timers import TimerService

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Lifespan — one shared client/session per process
# ---------------------------------------------------------------------------

@asynccontextmanager
async def app_lifespan(server: FastMCP) -> AsyncIterator[dict]:
    """Create the API client at startup, close on shutdown.

    The account id is resolved lazily on the first tool call.
    """
    client = TMetricClient()
    timers = TimerService(Session(client))
    logger.info(f"TMetric client ready ({client.base_url})")
    try:
        yield {"timers": timers}
    finally:
        await client.close()


# ---------------------------------------------------------------------------
# Server
# ---------------------------------------------------------------------------

mcp = FastMCP(
    "tmetric_mcp",
    instructions=(
        "Minimal TMetric time tracking. Use list_projects to discover "
        "project IDs, start_timer to begin tracking a task, stop_timer to "
        "finish it and get the time spent in GitLab format. Only one timer "
        "can run at a time: call get_current_timer or stop_timer before "
        "starting another. delete_time_entry removes the running timer, or "
        "with mode='last' the latest entry if it stopped within 5 minutes. "
        "Every tool returns a JSON object with a 'success' flag or, for "
        "get_current_timer, 'is_running'."
    ),
    lifespan=app_lifespan,
)


# ---------------------------------------------------------------------------
# Error handler
# ---------------------------------------------------------------------------

def _handle_error(e: Exception) -> str:
    """Convert unexpected exceptions to an INTERNAL_ERROR result."""
    logger.exception("Tool call failed")
    return format_json(error_result(ErrorCode.INTERNAL_ERROR, str(e) or type(e).__name__))


def _get_timers(ctx) -> TimerService:
    """Extract the timer service from request context."""
    return ctx.request_context.lifespan_context["timers"]


# ===================================================================
# TOOLS
# ===================================================================


@mcp.tool(
    name="list_projects",
    annotations={
        "title": "List TMetric Projects",
        "readOnlyHint": True,
        "destructiveHint": False,
        "idempotentHint": True,
        "openWorldHint": True,
    },
)
async def list_projects(ctx: Context) -> str:
    """Get the list of TMetric projects available for time tracking.

    Use this first to discover the project_id needed by start_timer.

    Returns:
        JSON: {"success": true, "projects": [{"id": 1, "name": "..."}]}
    """
    try:
        return format_json(await _get_timers(ctx).list_projects())
    except Exception as e:
        return _handle_error(e)


@mcp.tool(
    name="get_current_timer",
    annotations={
        "title": "Get Current TMetric Timer",
        "readOnlyHint": True,
        "destructiveHint": False,
        "idempotentHint": True,
        "openWorldHint": True,
    },
)
async def get_current_timer(ctx: Context) -> str:
    """Check if a timer is currently running and get its details.

    Returns:
        JSON with is_running and, when running, timer_id, task_name,
        task_url, project_name, project_id, started_at and elapsed
        (e.g. "1h 15m").
    """
    try:
        return format_json(await _get_timers(ctx).get_current_timer())
    except Exception as e:
        return _handle_error(e)


@mcp.tool(
    name="start_timer",
    annotations={
        "title": "Start TMetric Timer",
        "readOnlyHint": False,
        "destructiveHint": False,
        "idempotentHint": False,
        "openWorldHint": True,
    },
)
async def start_timer(
    project_id: Annotated[int, Field(description="TMetric project ID (from list_projects)")],
    task_name: Annotated[str, Field(description='Name of the task (e.g., "Issue #123: Fix bug")')],
    ctx: Context,
    task_url: Annotated[
        Optional[str],
        Field(description="Optional GitLab or GitHub issue URL to link the task to"),
    ] = None,
) -> str:
    """Start time tracking on a project and task.

    Fails with TIMER_ALREADY_RUNNING (and the running timer's details) if
    another timer is already running.

    Examples:
        - "Track time on issue 42" -> task_name="Issue #42: ...",
          task_url="https://gitlab.example.com/group/project/-/issues/42"
    """
    try:
        timers = _get_timers(ctx)
        result = await timers.start_timer(project_id, task_name.strip(), task_url or None)
        return format_json(result)
    except Exception as e:
        return _handle_error(e)


@mcp.tool(
    name="stop_timer",
    annotations={
        "title": "Stop TMetric Timer",
        "readOnlyHint": False,
        "destructiveHint": False,
        "idempotentHint": False,
        "openWorldHint": True,
    },
)
async def stop_timer(ctx: Context) -> str:
    """Stop the currently running timer and return time spent.

    Returns:
        JSON with time_spent in GitLab format (e.g. "1h30m"),
        time_spent_minutes, started_at, ended_at and task_name.
    """
    try:
        return format_json(await _get_timers(ctx).stop_timer())
    except Exception as e:
        return _handle_error(e)


@mcp.tool(
    name="delete_time_entry",
    annotations={
        "title": "Delete TMetric Time Entry",
        "readOnlyHint": False,
        "destructiveHint": True,
        "idempotentHint": False,
        "openWorldHint": True,
    },
)
async def delete_time_entry(
    ctx: Context,
    mode: Annotated[
        str,
        Field(
            description=(
                'Deletion mode: "current" deletes the active timer only, '
                '"last" deletes the most recent entry if it is running or '
                "stopped within the last 5 minutes"
            ),
        ),
    ] = DeleteMode.CURRENT.value,
) -> str:
    """Delete a time entry.

    WARNING: This is irreversible.
    """
    try:
        return format_json(await _get_timers(ctx).delete_time_entry(mode))
    except Exception as e:
        return _handle_error(e)
