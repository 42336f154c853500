"""
Error kinds raised by the reporting core.

Core functions raise these and never build HTTP responses; the REST layer
maps each kind to a status code in ``portal.handlers``.
"""
from __future__ import annotations

from contextlib import contextmanager

from django.db import DatabaseError, IntegrityError


class PortalError(Exception):
    code = "portal_error"
    default_message = "Request could not be completed"

    def __init__(self, message: str | None = None, **context):
        self.message = message or self.default_message
        self.context = context
        super().__init__(self.message)


class ValidationError(PortalError):
    code = "validation_error"
    default_message = "Invalid input"

    def __init__(self, message: str | None = None, field: str | None = None, **context):
        self.field = field
        super().__init__(message, field=field, **context)


class NotFoundError(PortalError):
    code = "not_found"
    default_message = "Resource not found"


class PermissionDeniedError(PortalError):
    code = "permission_denied"
    default_message = "You are not allowed to perform this action"


class IllegalTransitionError(PortalError):
    code = "illegal_transition"
    default_message = "Status change not allowed"

    def __init__(self, current: str, target: str, message: str | None = None):
        self.current = current
        self.target = target
        super().__init__(message or f"Cannot move from '{current}' to '{target}'", current=current, target=target)


class DuplicateError(PortalError):
    code = "duplicate"
    default_message = "Record already exists"


class StoreError(PortalError):
    code = "store_error"
    default_message = "Storage failure"


@contextmanager
def store_errors(operation: str):
    """
    Re-raise database failures as StoreError, keeping the original as cause.

    IntegrityError passes through untouched so callers can translate
    uniqueness violations themselves.
    """
    try:
        yield
    except IntegrityError:
        raise
    except DatabaseError as exc:
        raise StoreError(f"{operation} failed: {exc.__class__.__name__}") from exc
