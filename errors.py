class NotFoundError(ValueError):
    """Missing row, or a row owned by another user."""


class ConflictError(ValueError):
    pass


class BadRequestError(ValueError):
    pass


class UnauthorizedError(ValueError):
    pass


STATUS_CODES: dict[type[ValueError], int] = {
    NotFoundError: 404,
    ConflictError: 409,
    BadRequestError: 400,
    UnauthorizedError: 401,
}


def status_code_for(exc: ValueError) -> int:
    for exc_type, status in STATUS_CODES.items():
        if isinstance(exc, exc_type):
            return status
    return 400
