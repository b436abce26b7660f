"""Exceptions raised by the gateway, upload guard and service.

The HTTP layer renders every ``UsersApiError`` as ``{"error": message}``
with the class's ``status_code``.
"""


class UsersApiError(Exception):
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class BadRequest(UsersApiError):
    status_code = 400
    default_message = "Bad request"


class UnexpectedFile(BadRequest):
    default_message = "Unexpected field"


class UnsupportedMediaType(BadRequest):
    default_message = "Only image files are allowed"


class PayloadTooLarge(BadRequest):
    default_message = "File too large. Maximum size is 10MB"


class UserNotFound(UsersApiError):
    status_code = 404
    default_message = "User not found"


class ImageNotFound(UsersApiError):
    status_code = 404
    default_message = "Image not found"


class StorageError(UsersApiError):
    status_code = 500
    default_message = "Database commit failed"
