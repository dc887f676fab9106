"""Response formatting helpers for TMetric MCP.

Every tool answers with a JSON object; failures share one shape:
``{"success": false, "error": <code>, "message": <text>, ...}``.
"""

from __future__ import annotations

import json
from enum import Enum
from typing import Any

from tmetric_mcp.models import ErrorCode


# ---------------------------------------------------------------------------
# Result builders
# ---------------------------------------------------------------------------

def error_result(error: ErrorCode, message: str, **extra: Any) -> dict:
    """Build a failed tool result."""
    result = {"success": False, "error": error.value, "message": message}
    result.update(extra)
    return result


# ---------------------------------------------------------------------------
# JSON formatter
# ---------------------------------------------------------------------------

def _default(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    return str(value)


def format_json(data: Any) -> str:
    """Format data as indented JSON string."""
    return json.dumps(data, indent=2, ensure_ascii=False, default=_default)
