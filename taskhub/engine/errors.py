"""
TaskHub Error Hierarchy — Structured exceptions with serializable context.

Every error carries a human-readable message plus arbitrary keyword context
that is preserved by to_dict() for structured logging.

Hierarchy:
    TaskHubError
    ├── RecordNotFoundError       — Member / project / task does not exist
    ├── TaskHubValidationError    — Input rejected at a write boundary
    ├── DataStoreError            — Backing store failed (fetch or write)
    │   └── ConstraintViolationError — Unique / foreign key / check violation
    ├── DashboardLoadError        — Composite dashboard fetch failed
    ├── MemberLoadError           — Current member lookup/creation failed
    ├── TaskHubPermissionError    — Member may not perform the operation
    ├── TaskHubSessionError       — Authentication collaborator failed
    └── TaskHubConfigError        — Invalid taskhub.yaml
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


class TaskHubError(Exception):
    """Base error for all TaskHub failures."""

    def __init__(self, message: str, **context: Any):
        self.message = message
        self.error_type: str = self.__class__.__name__
        self.context: Dict[str, Any] = context
        self.timestamp: str = datetime.now(timezone.utc).isoformat()
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize error to a JSON-compatible dict for logging."""
        return {
            "error_type": self.error_type,
            "message": self.message,
            "timestamp": self.timestamp,
            "context": {k: str(v) for k, v in self.context.items()},
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), default=str)

    def __repr__(self) -> str:
        parts = [f"{self.error_type}: {self.message}"]
        for key in sorted(self.context):
            parts.append(f"{key}={self.context[key]}")
        return " | ".join(parts)


class RecordNotFoundError(TaskHubError):
    """A requested member, project or task does not exist."""

    def __init__(self, message: str, **context: Any):
        self.record_type: Optional[str] = context.get("record_type")
        self.record_id: Optional[str] = context.get("record_id")
        super().__init__(message, **context)


class TaskHubValidationError(TaskHubError):
    """
    Input validation failed at a write boundary.
    Includes field-level error details from Pydantic.
    """

    def __init__(self, message: str, **context: Any):
        self.validation_errors: List[Dict[str, Any]] = context.get("validation_errors") or []
        super().__init__(message, **context)

    def to_dict(self) -> Dict[str, Any]:
        d = super().to_dict()
        d["validation_errors"] = self.validation_errors
        return d


class DataStoreError(TaskHubError):
    """Backing store operation failed (select, insert, update, delete)."""

    def __init__(self, message: str, **context: Any):
        self.table: Optional[str] = context.get("table")
        self.operation: Optional[str] = context.get("operation")
        super().__init__(message, **context)


class ConstraintViolationError(DataStoreError):
    """Write rejected by a unique, foreign key or check constraint."""
    pass


class DashboardLoadError(TaskHubError):
    """Composite dashboard fetch failed. Partial dashboards are never returned."""
    pass


class MemberLoadError(TaskHubError):
    """Current member could not be loaded or lazily created."""
    pass


class TaskHubPermissionError(TaskHubError):
    """Member is not allowed to perform the requested operation."""

    def __init__(self, message: str, **context: Any):
        self.member_id: Optional[str] = context.get("member_id")
        self.reason: Optional[str] = context.get("reason")
        super().__init__(message, **context)


class TaskHubSessionError(TaskHubError):
    """Session or authentication error raised by the auth collaborator."""
    pass


class TaskHubConfigError(TaskHubError):
    """Configuration error — invalid taskhub.yaml."""
    pass
