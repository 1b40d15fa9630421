# domain/errors.py
"""Exceptions raised by the services layer.

Every error carries a participant-facing ``message`` and the HTTP status the
scanner API answers with, so pages and endpoints can report it without
inspecting the type.
"""


class ForumError(Exception):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(ForumError):
    status_code = 404


class RuleViolation(ForumError):
    status_code = 400


class AuthError(ForumError):
    status_code = 401


class PermissionDenied(ForumError):
    status_code = 403


class ConflictError(ForumError):
    status_code = 409
