"""
Exceptions raised by the design review workflow.

Each carries the HTTP status and machine-readable code used by the
exception handler registered in app.main.
"""
from typing import Optional


class DesignWorkflowError(Exception):
    """Base class for design workflow failures."""

    status_code = 400
    error_code = "design_error"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class DesignValidationError(DesignWorkflowError):
    """Missing or malformed input (no category, empty batch, ...)."""

    status_code = 400
    error_code = "validation_error"


class PermissionDenied(DesignWorkflowError):
    """Caller lacks the capability required for the action."""

    status_code = 403
    error_code = "forbidden"

    def __init__(self, action: str, message: Optional[str] = None):
        self.action = action
        super().__init__(message or f"Missing permission: {action}")


class DesignNotFound(DesignWorkflowError):
    """Unknown design file, comment or project id."""

    status_code = 404
    error_code = "not_found"

    def __init__(self, entity: str, entity_id):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")


class CategoryFrozenError(DesignWorkflowError):
    """Upload attempted into a category holding at least one frozen file."""

    status_code = 409
    error_code = "category_frozen"

    def __init__(self, project_id: int, category: str):
        self.project_id = project_id
        self.category = category
        super().__init__(f"Category '{category}' is frozen; uploads are locked")


class VersionConflictError(DesignWorkflowError):
    """Another writer took the version slot first."""

    status_code = 409
    error_code = "version_conflict"

    def __init__(self, project_id: int, category: str, version_number: int):
        self.project_id = project_id
        self.category = category
        self.version_number = version_number
        super().__init__(
            f"Version {version_number} of '{category}' was allocated concurrently; resubmit the upload"
        )


class StorageFailure(DesignWorkflowError):
    """Object store rejected a write."""

    status_code = 502
    error_code = "storage_failure"


class InvalidTransitionError(DesignWorkflowError):
    """Raised when an invalid approval transition is attempted."""

    status_code = 409
    error_code = "invalid_transition"

    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        super().__init__(f"Invalid transition: {current} → {target}")
