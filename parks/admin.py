from django.contrib import admin

from .models import Park, Pricing, SpecialPeriod


class SpecialPeriodInline(admin.TabularInline):
    model = SpecialPeriod
    extra = 0
    fields = ("position", "name", "start_date", "end_date", "open_days", "open_time", "close_time")
    ordering = ("position", "id")


class PricingInline(admin.TabularInline):
    model = Pricing
    extra = 0
    fields = ("name", "price", "description")


@admin.register(Park)
class ParkAdmin(admin.ModelAdmin):
    list_display = ("name", "location", "closed_days_display", "max_booking_days", "is_active", "created_at")
    list_filter = ("is_active",)
    search_fields = ("name", "location")
    ordering = ("name",)
    inlines = (SpecialPeriodInline, PricingInline)

    @admin.display(description="Closed days")
    def closed_days_display(self, obj: Park) -> str:
        return ", ".join(obj.closed_days or []) or "—"

    def save_model(self, request, obj, form, change):
        obj.full_clean()
        return super().save_model(request, obj, form, change)


@admin.register(Pricing)
class PricingAdmin(admin.ModelAdmin):
    list_display = ("name", "park", "price", "updated_at")
    list_filter = ("park",)
    search_fields = ("name", "park__name")
    list_select_related = ("park",)
