from __future__ import annotations

import json

from django.http import JsonResponse

from .errors import (
    CapacityExceededError,
    ClosedDayError,
    InvalidInputError,
    NotFoundError,
    SchedulingError,
    TemplateConflictError,
    TemplateInUseError,
)


class PayloadError(ValueError):
    pass


def read_json(request) -> dict:
    try:
        payload = json.loads(request.body.decode("utf-8") or "{}")
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise PayloadError("Invalid JSON payload.") from exc
    if not isinstance(payload, dict):
        raise PayloadError("Invalid JSON payload.")
    return payload


def error_response(exc: SchedulingError) -> JsonResponse:
    """
    Map a domain error to its HTTP status; messages are user-safe.
    """
    if isinstance(exc, NotFoundError):
        return JsonResponse({"error": str(exc)}, status=404)
    if isinstance(exc, CapacityExceededError):
        return JsonResponse({"error": str(exc), "remaining": exc.remaining}, status=409)
    if isinstance(exc, ClosedDayError):
        return JsonResponse({"error": "The park is closed on that date.", "reason": exc.reason}, status=409)
    if isinstance(exc, (TemplateConflictError, TemplateInUseError)):
        return JsonResponse({"error": str(exc)}, status=409)
    if isinstance(exc, InvalidInputError):
        return JsonResponse({"error": str(exc)}, status=400)
    return JsonResponse({"error": "Scheduling error."}, status=500)


def authentication_required() -> JsonResponse:
    return JsonResponse({"error": "Authentication required."}, status=401)
