"""
Domain exceptions.

Services raise these; the handlers registered in catalog.main turn them
into response envelopes carrying the matching HTTP status.
"""


class CatalogError(Exception):
    """Base exception for catalog operations."""

    status_code = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class NotFoundError(CatalogError):
    """Raised when an entity does not exist."""

    status_code = 404

    def __init__(self, entity_name: str, key: object):
        super().__init__(f"{entity_name} '{key}' not found")
        self.entity_name = entity_name
        self.key = key


class ConflictError(CatalogError):
    """Raised when a write would violate a uniqueness or structural rule."""

    status_code = 409


class InvalidInputError(CatalogError):
    """Raised when a request is well-formed but semantically invalid."""

    status_code = 400

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field
