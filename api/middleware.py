import logging

from django.conf import settings
from django.http import JsonResponse

logger = logging.getLogger(__name__)


class UploadSizeLimitMiddleware:
    """Reject bodies larger than MAX_UPLOAD_SIZE before anything reads them."""

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        try:
            length = int(request.META.get("CONTENT_LENGTH") or 0)
        except ValueError:
            length = 0
        if length > settings.MAX_UPLOAD_SIZE:
            logger.warning("Rejected %s %s: body of %d bytes", request.method, request.path, length)
            return JsonResponse({"detail": "File is too large"}, status=413)
        return self.get_response(request)
