"""Enumerations shared by the field update pipeline."""
import enum


class UpdateStatus(str, enum.Enum):
    """Overall outcome of an issue update.

    - success: every attempted change was applied
    - partial: some changes were applied, some were rejected
    - failure: changes were attempted and none were applied
    - noop: nothing needed to be applied
    """

    SUCCESS = "success"
    PARTIAL = "partial"
    FAILURE = "failure"
    NOOP = "noop"


class CommandKind(str, enum.Enum):
    """Update channel a command is sent through."""

    BASIC = "basic"      # Direct replace of summary/description
    COMMAND = "command"  # YouTrack command grammar via /commands


class FailureKind(str, enum.Enum):
    """Why a single command was not applied."""

    VALUE_REJECTED = "value_rejected"        # 400: value not valid for the field
    PERMISSION_DENIED = "permission_denied"  # 403
    REJECTED = "rejected"                    # Any other 4xx
    TRANSPORT = "transport"                  # 401, 5xx, connection failures
