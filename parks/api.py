from __future__ import annotations

from django.http import JsonResponse
from django.views.decorators.http import require_GET

from scheduling.errors import ClosedDayError, SchedulingError
from scheduling.hours import WorkingHoursResolver
from scheduling.http import error_response
from scheduling.timeutils import parse_date, weekday_name


@require_GET
def working_hours_api(request, park_id: int):
    """
    GET /api/parks/<park_id>/working-hours/?date=YYYY-MM-DD

    A closed day is a regular answer here, not an error.
    """
    date_str = request.GET.get("date", "").strip()
    if not date_str:
        return JsonResponse({"error": "Missing required query param: date"}, status=400)

    try:
        target_date = parse_date(date_str)
        hours = WorkingHoursResolver().resolve_hours_for(park_id, target_date)
    except ClosedDayError as exc:
        return JsonResponse(
            {
                "date": target_date.isoformat(),
                "day": weekday_name(target_date),
                "closed": True,
                "reason": exc.reason,
            }
        )
    except SchedulingError as exc:
        return error_response(exc)

    return JsonResponse(
        {
            "date": target_date.isoformat(),
            "day": weekday_name(target_date),
            "closed": False,
            "working_hours": {"open": hours.open, "close": hours.close},
        }
    )
