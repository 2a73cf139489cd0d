class ApiError(Exception):
    """Business error reported to the API client as ``{"error": message}``."""

    status_code = 400

    def __init__(self, message):
        super().__init__(message)
        self.message = message


class NotFound(ApiError):
    status_code = 404


class ValidationFailed(ApiError):
    status_code = 400


class ActionNotAllowed(ApiError):
    status_code = 403


class AuthenticationFailed(ApiError):
    status_code = 401
