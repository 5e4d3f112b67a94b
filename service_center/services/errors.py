"""Error taxonomy shared by the service layer.

Each class doubles as a builtin so callers that only know about
``ValueError``/``LookupError`` keep working.
"""

from __future__ import annotations


class ValidationError(ValueError):
    """Caller input failed a field check; raised before any mutation."""
    pass


class HierarchyValidationError(ValidationError):
    """Bad identifiers or document shape in a hierarchy document."""
    pass


class NotFoundError(LookupError):
    """A referenced row does not exist or is soft-deleted."""

    def __init__(self, entity: str, ident: object, detail: str | None = None) -> None:
        self.entity = entity
        self.ident = ident
        message = f"{entity} with ID {ident} not found"
        if detail:
            message = f"{message} {detail}"
        super().__init__(message)

    def __str__(self) -> str:
        return self.args[0]


class ConflictError(ValueError):
    """Uniqueness violation or stale row version."""
    pass


def require_positive_id(value: int | None, label: str) -> int:
    if value is None or int(value) <= 0:
        raise HierarchyValidationError(f"Invalid {label} ID")
    return int(value)
