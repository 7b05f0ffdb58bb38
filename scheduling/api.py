from __future__ import annotations

from django.http import JsonResponse
from django.views.decorators.http import require_GET, require_http_methods, require_POST

from . import ledger
from .errors import SchedulingError
from .http import PayloadError, authentication_required, error_response, read_json
from .materializer import SlotMaterializer
from .models import TimeSlotInstance, TimeSlotTemplate
from .templates import (
    TemplateInput,
    check_overlap,
    create_template,
    delete_template,
    list_templates,
    update_template,
)
from .timeutils import parse_date


def _staff_required(request):
    if not request.user.is_authenticated:
        return authentication_required()
    if not request.user.is_staff:
        return JsonResponse({"error": "Staff access required."}, status=403)
    return None


def _template_input(payload: dict) -> TemplateInput:
    valid_from = payload.get("valid_from")
    if not valid_from:
        raise PayloadError("valid_from is required.")
    valid_until = payload.get("valid_until") or None
    days = payload.get("days_of_week")
    if not isinstance(days, list):
        raise PayloadError("days_of_week must be a list of day numbers.")
    pricing_ids = payload.get("pricing_ids") or []
    if not isinstance(pricing_ids, list):
        raise PayloadError("pricing_ids must be a list.")

    return TemplateInput(
        start_time=payload.get("start_time"),
        end_time=payload.get("end_time"),
        days_of_week=tuple(days),
        valid_from=parse_date(valid_from),
        valid_until=parse_date(valid_until) if valid_until else None,
        ticket_limit=payload.get("ticket_limit"),
        price_adjustment=payload.get("price_adjustment", "0"),
        pricing_ids=tuple(pricing_ids),
    )


def template_to_dict(template: TimeSlotTemplate) -> dict:
    return {
        "id": template.pk,
        "park_id": template.park_id,
        "start_time": template.start_time,
        "end_time": template.end_time,
        "days_of_week": list(template.days_of_week),
        "valid_from": template.valid_from.isoformat(),
        "valid_until": template.valid_until.isoformat() if template.valid_until else None,
        "ticket_limit": template.ticket_limit,
        "price_adjustment": str(template.price_adjustment),
        "pricing_ids": sorted(p.pk for p in template.pricings.all()),
    }


def instance_to_dict(instance: TimeSlotInstance) -> dict:
    return {
        "id": instance.pk,
        "park_id": instance.park_id,
        "template_id": instance.template_id,
        "date": instance.date.isoformat(),
        "start_time": instance.start_time,
        "end_time": instance.end_time,
        "ticket_limit": instance.ticket_limit,
        "available_tickets": instance.available_tickets,
        "price_adjustment": str(instance.price_adjustment),
    }


@require_GET
def slots_api(request, park_id: int):
    """
    GET /api/parks/<park_id>/slots/?date=YYYY-MM-DD

    Materializes the date if needed and returns its instances with availability.
    """
    date_str = request.GET.get("date", "").strip()
    if not date_str:
        return JsonResponse({"error": "Missing required query param: date"}, status=400)

    try:
        target_date = parse_date(date_str)
        instances = SlotMaterializer().materialize_for_date(park_id, target_date)
    except SchedulingError as exc:
        return error_response(exc)

    return JsonResponse(
        {
            "park_id": park_id,
            "date": target_date.isoformat(),
            "slots": [instance_to_dict(instance) for instance in instances],
        }
    )


@require_http_methods(["GET", "POST"])
def templates_api(request, park_id: int):
    """
    GET  /api/parks/<park_id>/templates/[?date=&day_of_week=&pricing_id=]
    POST /api/parks/<park_id>/templates/ (staff only)
    """
    if request.method == "GET":
        day_of_week = request.GET.get("day_of_week", "").strip()
        if day_of_week and not day_of_week.isdigit():
            return JsonResponse({"error": "Invalid day_of_week. Expected 0-6."}, status=400)
        try:
            templates = list_templates(
                park_id=park_id,
                on_date=request.GET.get("date") or None,
                weekday=int(day_of_week) if day_of_week else None,
                pricing_id=request.GET.get("pricing_id") or None,
            )
        except SchedulingError as exc:
            return error_response(exc)
        return JsonResponse({"templates": [template_to_dict(t) for t in templates]})

    denied = _staff_required(request)
    if denied:
        return denied

    try:
        data = _template_input(read_json(request))
        template = create_template(park_id=park_id, data=data)
    except PayloadError as exc:
        return JsonResponse({"error": str(exc)}, status=400)
    except SchedulingError as exc:
        return error_response(exc)

    return JsonResponse({"success": True, "template": template_to_dict(template)}, status=201)


@require_POST
def check_overlap_api(request, park_id: int):
    """
    POST /api/parks/<park_id>/templates/check-overlap/
    """
    denied = _staff_required(request)
    if denied:
        return denied

    try:
        data = _template_input(read_json(request))
        conflicts = check_overlap(park_id=park_id, data=data)
    except PayloadError as exc:
        return JsonResponse({"error": str(exc)}, status=400)
    except SchedulingError as exc:
        return error_response(exc)

    return JsonResponse(
        {
            "has_overlap": bool(conflicts),
            "conflicts": [
                {
                    "template_id": c.template_id,
                    "days_of_week": c.days_of_week,
                    "time": f"{c.start_time}-{c.end_time}",
                    "valid_from": c.valid_from.isoformat(),
                    "valid_until": c.valid_until.isoformat() if c.valid_until else None,
                }
                for c in conflicts
            ],
        }
    )


@require_POST
def update_template_api(request, template_id: int):
    """
    POST /api/templates/<template_id>/update/
    """
    denied = _staff_required(request)
    if denied:
        return denied

    try:
        data = _template_input(read_json(request))
        template = update_template(template_id=template_id, data=data)
    except PayloadError as exc:
        return JsonResponse({"error": str(exc)}, status=400)
    except SchedulingError as exc:
        return error_response(exc)

    return JsonResponse({"success": True, "template": template_to_dict(template)})


@require_POST
def delete_template_api(request, template_id: int):
    """
    POST /api/templates/<template_id>/delete/
    """
    denied = _staff_required(request)
    if denied:
        return denied

    try:
        delete_template(template_id=template_id)
    except SchedulingError as exc:
        return error_response(exc)

    return JsonResponse({"success": True, "message": "Template deleted."})


@require_GET
def instance_api(request, instance_id: int):
    """
    GET /api/instances/<instance_id>/
    """
    try:
        availability = ledger.query(instance_id)
    except SchedulingError as exc:
        return error_response(exc)

    return JsonResponse(
        {
            "id": availability.instance_id,
            "available_tickets": availability.available_tickets,
            "ticket_limit": availability.ticket_limit,
            "sold_out": availability.is_sold_out,
        }
    )
