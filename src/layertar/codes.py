"""Error code constants for layertar build failures.

These constants prevent stringly-typed error codes and let callers
branch on the kind of failure without parsing messages.
"""

from enum import Enum


class ErrorCode(str, Enum):
    """Build failure codes (every one of them aborts the build)."""

    # Walk / filesystem
    ACCESS_ERROR = "ACCESS_ERROR"
    LINK_RESOLUTION = "LINK_RESOLUTION"
    UNSUPPORTED_TYPE = "UNSUPPORTED_TYPE"

    # Archive content
    CONFLICT = "CONFLICT"

    # Stream / destination
    IO_ERROR = "IO_ERROR"
