import logging

from django.http import JsonResponse

from trivify.exceptions import ApiError

logger = logging.getLogger("trivify")


class JsonExceptionMiddleware:
    """
    Turns exceptions raised by the API views into JSON error bodies.

    Business errors keep their message and status, anything else under
    /api/ becomes a 500 without internal details.
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        return self.get_response(request)

    def process_exception(self, request, exception):
        if isinstance(exception, ApiError):
            logger.info(f"{request.method} {request.path} -> {exception.status_code}: {exception.message}")
            return JsonResponse({"error": exception.message}, status=exception.status_code)

        if not request.path.startswith("/api/"):
            return None

        logger.exception(exception)
        return JsonResponse({"error": "Unexpected error, please try again later."}, status=500)
