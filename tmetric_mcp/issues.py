"""Issue-tracker link helpers for new timers.

Turns a GitLab or GitHub issue URL into the externalLink/integration pair
TMetric shows next to a task.
"""

from __future__ import annotations

import re
from urllib.parse import urlsplit

from tmetric_mcp.models import ExternalLink, Integration, IntegrationType, TaskRef

DEFAULT_BASE_URL = "https://gitlab.com"

_ISSUE_NUMBER_RE = re.compile(r"issues/(\d+)")


def _host(url: str) -> str | None:
    """Host with optional port, or None if the URL has no scheme/host."""
    try:
        parts = urlsplit(url.strip())
        port = parts.port
    except ValueError:
        return None
    if not parts.scheme or not parts.hostname:
        return None
    host = parts.hostname
    if ":" in host:
        host = f"[{host}]"
    if port is not None:
        host = f"{host}:{port}"
    return host


def detect_integration_type(url: str) -> IntegrationType:
    """GitHub for github.com hosts, GitLab for everything else."""
    host = _host(url)
    if host and "github.com" in host:
        return IntegrationType.GITHUB
    return IntegrationType.GITLAB


def extract_base_url(url: str) -> str:
    """Return "scheme://host[:port]" of the URL, or the gitlab.com default."""
    host = _host(url)
    if host is None:
        return DEFAULT_BASE_URL
    return f"{urlsplit(url.strip()).scheme}://{host}"


def extract_issue_number(url: str) -> str | None:
    """Issue number from an ".../issues/<n>" URL, ignoring query and fragment."""
    match = _ISSUE_NUMBER_RE.search(url)
    return match.group(1) if match else None


def format_issue_id(issue_number: str | int, integration_type: IntegrationType | str) -> str:
    """Display id TMetric shows for a linked issue, e.g. "GitHub Issue: #456"."""
    label = integration_type.value if isinstance(integration_type, IntegrationType) else integration_type
    return f"{label} Issue: #{issue_number}"


def build_task(task_name: str, task_url: str | None = None) -> TaskRef:
    """Build the task for a new time entry.

    The issue link is attached only when an issue number can be read from
    ``task_url``; any other URL is ignored.
    """
    task = TaskRef(name=task_name)
    if not task_url:
        return task

    issue_number = extract_issue_number(task_url)
    if issue_number is None:
        return task

    integration_type = detect_integration_type(task_url)
    task.external_link = ExternalLink(
        link=task_url,
        issue_id=format_issue_id(issue_number, integration_type),
    )
    task.integration = Integration(
        url=extract_base_url(task_url),
        type=integration_type.value,
    )
    return task
