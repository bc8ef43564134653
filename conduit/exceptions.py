"""
Application exception hierarchy.

Services raise these; the handlers registered in ``conduit.main`` turn
them into ``{"errors": {field: message}}`` responses:

    ConduitError (base)
    ├── ValidationError     → 422
    ├── DuplicateKey        → 409
    ├── Unauthorized        → 401
    ├── Forbidden           → 403
    ├── NotFound            → 404
    └── ConfigurationError  → 500

Every error is local to one request.  Raising any of them aborts the
request, and ``get_db`` rolls back whatever the handler had flushed.
"""
from typing import Dict, Optional


class ConduitError(Exception):
    """
    Base exception for all Conduit application errors.

    Attributes:
        message:  Human-readable summary, used for logging.
        errors:   Field-keyed messages returned to the client.
    """

    status_code = 500

    def __init__(self, message: str, errors: Optional[Dict[str, str]] = None):
        self.message = message
        self.errors = errors or {}
        super().__init__(self.message)


class ValidationError(ConduitError):
    """A required field is blank or a value does not match its pattern."""

    status_code = 422

    def __init__(self, errors: Dict[str, str]):
        super().__init__(message="Validation failed", errors=errors)


class DuplicateKey(ConduitError):
    """A unique field (username, email, slug) is already in use."""

    status_code = 409

    def __init__(self, field: str):
        self.field = field
        super().__init__(
            message=f"Duplicate value for {field}",
            errors={field: "is already taken"},
        )


class Unauthorized(ConduitError):
    """The credential is missing, malformed, expired or badly signed."""

    status_code = 401

    def __init__(self, reason: str = "is missing"):
        super().__init__(message=f"token {reason}", errors={"token": reason})


class Forbidden(ConduitError):
    """The caller is authenticated but does not own *resource*."""

    status_code = 403

    def __init__(self, resource: str):
        self.resource = resource
        super().__init__(
            message=f"{resource} is owned by another user",
            errors={resource: "is not yours"},
        )


class NotFound(ConduitError):
    """A path parameter does not resolve to an entity."""

    status_code = 404

    def __init__(self, resource: str, key: Optional[str] = None):
        self.resource = resource
        self.key = key
        message = f"{resource} not found"
        if key is not None:
            message = f"{resource} {key!r} not found"
        super().__init__(message=message, errors={resource: "not found"})


class ConfigurationError(ConduitError):
    """The server is missing configuration it needs (e.g. the JWT secret)."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message=message, errors={"server": "is misconfigured"})
