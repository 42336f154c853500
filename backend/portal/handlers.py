from __future__ import annotations

import logging

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

from .exceptions import (
    DuplicateError,
    IllegalTransitionError,
    NotFoundError,
    PermissionDeniedError,
    PortalError,
    StoreError,
    ValidationError,
)

logger = logging.getLogger(__name__)

STATUS_BY_ERROR = {
    ValidationError: status.HTTP_400_BAD_REQUEST,
    PermissionDeniedError: status.HTTP_403_FORBIDDEN,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    IllegalTransitionError: status.HTTP_409_CONFLICT,
    DuplicateError: status.HTTP_409_CONFLICT,
    StoreError: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def status_for(exc: PortalError) -> int:
    for kind in type(exc).__mro__:
        if kind in STATUS_BY_ERROR:
            return STATUS_BY_ERROR[kind]
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def portal_exception_handler(exc, context):
    if not isinstance(exc, PortalError):
        return exception_handler(exc, context)

    if isinstance(exc, StoreError):
        view = context.get("view")
        logger.exception("Storage failure in %s", view.__class__.__name__ if view else "unknown view")

    body = {"error": exc.message, "code": exc.code}
    field = getattr(exc, "field", None)
    if field:
        body["field"] = field
    return Response(body, status=status_for(exc))
