"""HTTP routers, one module per resource.

Every handler returns the same envelope: `{success, message?, data?}`.
Error envelopes are produced by the exception handlers in `planner.main`.
"""

from typing import Any, Optional


def envelope(data: Optional[Any] = None, message: Optional[str] = None) -> dict:
    body = {"success": True}
    if message:
        body["message"] = message
    if data is not None:
        body["data"] = data
    return body
