"""
Error Types for Finance Tracker

Every failure inside the core surfaces as one of these typed errors so the
presentation layer can render it. Nothing is swallowed and nothing is retried
here; retry policy belongs to the remote store implementation.

DESIGN DECISION: pydantic's own ValidationError never leaves the core.
It is translated into our ValidationError, which names the offending field.
"""

from typing import Any, Optional

from pydantic import ValidationError as PydanticValidationError


class FinanceError(Exception):
    """Base exception for all finance tracker errors."""
    pass


class ValidationError(FinanceError, ValueError):
    """
    A draft, update or goal set is malformed.

    Attributes:
        field: Name of the first offending field ("__root__" for
               whole-record checks)
        issues: Every problem found, as {"field", "message"} dicts
    """

    def __init__(
        self,
        field: str,
        message: str,
        issues: Optional[list[dict[str, Any]]] = None,
    ):
        self.field = field
        self.message = message
        self.issues = issues or [{"field": field, "message": message}]
        super().__init__(f"{field}: {message}")

    @classmethod
    def from_pydantic(
        cls,
        exc: PydanticValidationError,
        model_name: str,
    ) -> "ValidationError":
        """Translate a pydantic error into a field-identified ValidationError."""
        issues = []
        for err in exc.errors():
            loc = err.get("loc") or ()
            field = ".".join(str(part) for part in loc) if loc else "__root__"
            issues.append({"field": field, "message": err.get("msg", "invalid value")})

        if not issues:
            issues = [{"field": "__root__", "message": str(exc)}]

        first = issues[0]
        return cls(
            field=first["field"],
            message=f"invalid {model_name}: {first['message']}",
            issues=issues,
        )


class NotFoundError(FinanceError, LookupError):
    """A mutation targeted an entity that does not exist."""

    def __init__(self, entity: str, entity_id: Any):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} not found: {entity_id}")


class AuthenticationRequiredError(FinanceError):
    """A mutation was attempted while no user is signed in."""
    pass


class StorageError(FinanceError):
    """Base exception for storage operations."""
    pass


class RemoteUnavailableError(StorageError):
    """
    The remote store could not be reached or rejected the call.

    The in-memory repository keeps answering queries from its last
    snapshot, but mutations fail with this error instead of being queued.
    """
    pass
