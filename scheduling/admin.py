from django.contrib import admin
from django.utils import timezone

from .models import TimeSlotInstance, TimeSlotTemplate


@admin.register(TimeSlotTemplate)
class TimeSlotTemplateAdmin(admin.ModelAdmin):
    list_display = ("id", "park", "window", "days_of_week", "valid_from", "valid_until", "ticket_limit")
    list_filter = ("park",)
    filter_horizontal = ("pricings",)
    list_select_related = ("park",)

    @admin.display(description="Time", ordering="start_time")
    def window(self, obj: TimeSlotTemplate) -> str:
        return f"{obj.start_time}–{obj.end_time}"

    def save_model(self, request, obj, form, change):
        obj.full_clean()
        return super().save_model(request, obj, form, change)


class UpcomingFilter(admin.SimpleListFilter):
    title = "when"
    parameter_name = "when"

    def lookups(self, request, model_admin):
        return (("upcoming", "Upcoming"), ("past", "Past"))

    def queryset(self, request, queryset):
        today = timezone.localdate()
        if self.value() == "upcoming":
            return queryset.filter(date__gte=today)
        if self.value() == "past":
            return queryset.filter(date__lt=today)
        return queryset


@admin.register(TimeSlotInstance)
class TimeSlotInstanceAdmin(admin.ModelAdmin):
    list_display = ("id", "park", "date", "window", "available_tickets", "ticket_limit", "source")
    list_filter = ("park", "date", UpcomingFilter)
    ordering = ("-date", "start_time")
    list_select_related = ("park", "template")
    # Counters move only through the ledger.
    readonly_fields = ("ticket_limit", "available_tickets", "created_at", "updated_at")

    @admin.display(description="Time", ordering="start_time")
    def window(self, obj: TimeSlotInstance) -> str:
        return f"{obj.start_time}–{obj.end_time}"

    @admin.display(description="Source")
    def source(self, obj: TimeSlotInstance) -> str:
        return "auto-fill" if obj.is_auto_filled else f"template {obj.template_id}"

    def has_add_permission(self, request):
        return False
