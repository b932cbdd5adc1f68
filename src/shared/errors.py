"""Domain exceptions mapped to HTTP responses by the global exception handler."""


class GatewayError(Exception):
    status_code: int = 500
    error: str = "internal_server_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class BadRequestError(GatewayError, ValueError):
    status_code = 400
    error = "bad_request"


class AuthenticationError(GatewayError):
    status_code = 401
    error = "unauthorized"


class AuthorizationError(GatewayError, PermissionError):
    status_code = 403
    error = "forbidden"


class NotFoundError(GatewayError, LookupError):
    status_code = 404
    error = "not_found"


class ConflictError(GatewayError):
    status_code = 409
    error = "conflict"
