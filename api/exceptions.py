from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler


class DubbingError(Exception):
    """Base class for errors raised by the dubbing pipeline and its API."""


class ValidationError(DubbingError):
    """User input is malformed (equal languages, wrong file type, missing fields)."""


class NotFoundError(DubbingError):
    pass


class ForbiddenError(DubbingError):
    pass


class TransientProviderError(DubbingError):
    """An external AI or media service failed; the owning stage recovers with a fallback."""


class FatalStageError(DubbingError):
    """No output artifact can be produced at all; the job fails."""


_STATUS_FOR = {
    ValidationError: status.HTTP_400_BAD_REQUEST,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    ForbiddenError: status.HTTP_403_FORBIDDEN,
}


def exception_handler(exc, context):
    """DRF exception handler that also renders the domain errors above."""
    for exc_type, code in _STATUS_FOR.items():
        if isinstance(exc, exc_type):
            return Response({"detail": str(exc)}, status=code)
    return drf_exception_handler(exc, context)
