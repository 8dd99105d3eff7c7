"""
Middleware for request logging and error handling.
"""
import json
import logging
import time
from uuid import uuid4

from django.http import JsonResponse

from shop.domain.errors import DomainError
from shop.infra.pii_masker import mask_pii_in_dict

logger = logging.getLogger(__name__)


class ErrorHandler:
    """Error handler for API responses."""

    ERROR_CODES = {
        "VALIDATION_ERROR": 400,
        "INSUFFICIENT_STOCK": 400,
        "INVALID_STATE": 400,
        "NOT_FOUND": 404,
        "CONFLICT": 409,
        "DUPLICATE_REQUEST": 409,
        "STORE_ERROR": 500,
        "INTERNAL_ERROR": 500,
    }

    @classmethod
    def handle_error(cls, error: Exception) -> JsonResponse:
        """Handle error and return JSON response."""
        if isinstance(error, DomainError):
            status_code = cls.ERROR_CODES.get(error.code, 400)
            if status_code >= 500:
                logger.error(
                    "domain_error",
                    extra={"error_code": error.code, "error": error.message},
                )
                message = "A storage error occurred"
            else:
                message = error.message
            return JsonResponse(
                {
                    "error": {
                        "code": error.code,
                        "message": message,
                    }
                },
                status=status_code,
            )

        logger.error(
            "unexpected_error",
            extra={
                "error_code": type(error).__name__,
                "error": str(error),
            },
            exc_info=error,
        )

        return JsonResponse(
            {
                "error": {
                    "code": "INTERNAL_ERROR",
                    "message": "An internal error occurred",
                }
            },
            status=500,
        )


class RequestLoggingMiddleware:
    """Structured request/response logging with request ids and PII masking."""

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        request_id = request.headers.get("X-Request-ID") or str(uuid4())
        request.request_id = request_id
        started = time.monotonic()

        logger.info(
            "api_request",
            extra={
                "request_id": request_id,
                "method": request.method,
                "path": request.path,
                "payload": self._masked_payload(request),
            },
        )

        response = self.get_response(request)
        response["X-Request-ID"] = request_id

        logger.info(
            "api_response",
            extra={
                "request_id": request_id,
                "method": request.method,
                "path": request.path,
                "status": response.status_code,
                "duration_ms": round((time.monotonic() - started) * 1000, 2),
            },
        )
        return response

    def process_exception(self, request, exception):
        if not request.path.startswith("/api/"):
            return None
        return ErrorHandler.handle_error(exception)

    def _masked_payload(self, request):
        if request.method not in ("POST", "PUT", "PATCH") or not request.body:
            return None
        try:
            data = json.loads(request.body)
        except (ValueError, UnicodeDecodeError):
            return None
        return mask_pii_in_dict(data) if isinstance(data, dict) else None
