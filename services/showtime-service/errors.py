class ServiceError(Exception):
    """Base of every failure an operation reports back to its caller.

    ``kind`` is the stable tag callers switch on, ``status`` the HTTP code the
    handlers answer with. Extra keyword arguments travel as ``details`` and are
    merged into the error body (e.g. the id of a conflicting showtime).
    """

    kind = "ServerError"
    status = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None, **details):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_dict(self):
        body = {"ok": False, "kind": self.kind, "error": self.message}
        body.update(self.details)
        return body


class Unauthorized(ServiceError):
    kind = "Unauthorized"
    status = 401
    default_message = "Unauthorized"


class BadParam(ServiceError):
    kind = "BadParam"
    status = 400
    default_message = "Bad parameter"


class Conflict(ServiceError):
    kind = "Conflict"
    status = 409
    default_message = "Conflict"


class ServerError(ServiceError):
    pass


def require_int(value, name: str, minimum: int | None = None) -> int:
    # bool is an int subclass; a JSON true is never a valid id or timestamp
    if isinstance(value, bool):
        raise BadParam(f"{name} must be an integer")
    if isinstance(value, str) and value.strip():
        try:
            value = int(value)
        except ValueError:
            raise BadParam(f"{name} must be an integer") from None
    if not isinstance(value, int):
        raise BadParam(f"{name} is required" if value is None else f"{name} must be an integer")
    if minimum is not None and value < minimum:
        raise BadParam(f"{name} must be at least {minimum}")
    return value
