"""Domain errors raised by services and mapped to HTTP responses in main."""


class NotFoundError(Exception):
    """Raised when a requested entity does not exist (404)."""

    def __init__(self, entity: str, entity_id: int | str | None = None):
        self.entity = entity
        self.entity_id = entity_id
        msg = f"{entity} not found"
        if entity_id is not None:
            msg = f"{entity} {entity_id} not found"
        super().__init__(msg)


class InvalidStateError(Exception):
    """Raised when input or entity state rules out the requested operation (400)."""


class ConflictError(Exception):
    """Raised when the request would duplicate an existing entity (409)."""
