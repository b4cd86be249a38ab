"""Error kinds raised by the archive lifecycle services.

Each kind carries the HTTP status the API layer renders it with. They are
raised synchronously inside the request transaction; ``get_db`` rolls the
session back, so no partial archive state is ever committed.
"""

from __future__ import annotations


class LifecycleError(Exception):
    status_code = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFound(LifecycleError):
    status_code = 404

    def __init__(self, what: str, ident: object | None = None) -> None:
        message = f"{what} not found" if ident is None else f"{what} {ident} not found"
        super().__init__(message)


class UnsupportedEntityType(LifecycleError):
    status_code = 400

    def __init__(self, entity_type: object) -> None:
        super().__init__(f"Unsupported entity type: {entity_type}")
        self.entity_type = entity_type


class MalformedPayload(LifecycleError):
    status_code = 422

    def __init__(self, message: str) -> None:
        super().__init__(f"Bad archive payload: {message}")


class InUse(LifecycleError):
    status_code = 409

    def __init__(self, what: str, ident: object, references: int) -> None:
        super().__init__(
            f"Cannot archive or delete {what} {ident}: still referenced by "
            f"{references} row(s). Remove all references first."
        )
        self.references = references


class HasDependents(LifecycleError):
    status_code = 409

    def __init__(self, what: str, ident: object, dependent: str, count: int) -> None:
        super().__init__(
            f"Cannot delete {what} {ident} with {count} existing {dependent}. "
            f"Delete {dependent} first."
        )
        self.dependent = dependent
        self.count = count
