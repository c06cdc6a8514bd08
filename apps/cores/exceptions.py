import logging

from django.core.exceptions import PermissionDenied, ValidationError as DjangoValidationError
from django.http import Http404
from rest_framework import status
from rest_framework.exceptions import APIException, PermissionDenied as DRFPermissionDenied
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class ServiceError(APIException):
    """
    Base class for every failure raised by the escrow / negotiation /
    deliverable services. `kind` is the stable machine-readable code.
    """
    status_code = status.HTTP_400_BAD_REQUEST
    kind = "error"
    default_detail = "Request could not be completed."

    def __init__(self, detail=None):
        super().__init__(detail=detail, code=self.kind)


class NotFound(ServiceError):
    status_code = status.HTTP_404_NOT_FOUND
    kind = "not_found"
    default_detail = "Requested record does not exist."


class Forbidden(ServiceError):
    status_code = status.HTTP_403_FORBIDDEN
    kind = "forbidden"
    default_detail = "You are not allowed to perform this action."


class InvalidState(ServiceError):
    status_code = status.HTTP_409_CONFLICT
    kind = "invalid_state"
    default_detail = "Transition is not allowed from the current state."


class InvalidArgument(ServiceError):
    status_code = status.HTTP_400_BAD_REQUEST
    kind = "invalid_argument"
    default_detail = "Invalid or missing argument."


class LimitExceeded(ServiceError):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    kind = "limit_exceeded"
    default_detail = "Limit reached."


class Conflict(ServiceError):
    status_code = status.HTTP_409_CONFLICT
    kind = "conflict"
    default_detail = "Action conflicts with an existing record."


def _flatten(detail):
    if isinstance(detail, dict):
        return "; ".join(f"{key}: {_flatten(value)}" for key, value in detail.items())
    if isinstance(detail, (list, tuple)):
        return " ".join(_flatten(item) for item in detail)
    return str(detail)


def custom_exception_handler(exc, context):
    """
    Render every error as {"error": {"kind": ..., "message": ...}}.
    """
    if isinstance(exc, DjangoValidationError):
        exc = InvalidArgument(" ".join(exc.messages))
    elif isinstance(exc, (PermissionDenied, DRFPermissionDenied)):
        exc = Forbidden(str(exc) or None)
    elif isinstance(exc, Http404):
        exc = NotFound(str(exc) or None)

    response = exception_handler(exc, context)
    if response is None:
        return None

    if isinstance(exc, ServiceError):
        kind = exc.kind
    elif response.status_code == status.HTTP_400_BAD_REQUEST:
        kind = InvalidArgument.kind
    elif isinstance(exc, APIException):
        kind = exc.default_code
    else:
        kind = "error"

    message = _flatten(response.data.get("detail", response.data)) if isinstance(response.data, dict) else _flatten(response.data)

    if response.status_code >= 500:
        logger.error("Unhandled service error [%s]: %s", kind, message)

    response.data = {"error": {"kind": kind, "message": message}}
    return response
