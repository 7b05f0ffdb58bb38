from django.contrib import admin

from .models import Cart, CartItem


class CartItemInline(admin.TabularInline):
    model = CartItem
    extra = 0
    can_delete = False
    fields = ("instance", "pricing", "quantity", "unit_price", "status", "ticket_code", "used")
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Cart)
class CartAdmin(admin.ModelAdmin):
    list_display = ("id", "user_email", "status", "payment_status", "payment_method", "updated_at")
    list_filter = ("status", "payment_status")
    search_fields = ("user__email", "user__username")
    readonly_fields = ("user", "status", "payment_status", "payment_method", "created_at", "updated_at")
    inlines = (CartItemInline,)
    list_select_related = ("user",)

    @admin.display(description="User", ordering="user__email")
    def user_email(self, obj: Cart) -> str:
        return obj.user.email or obj.user.username


@admin.register(CartItem)
class CartItemAdmin(admin.ModelAdmin):
    list_display = ("id", "cart", "instance", "pricing", "quantity", "status", "ticket_code", "used")
    list_filter = ("status", "used")
    search_fields = ("ticket_code", "cart__user__email")
    list_select_related = ("cart", "instance", "pricing")
    readonly_fields = (
        "cart",
        "instance",
        "pricing",
        "quantity",
        "unit_price",
        "status",
        "ticket_code",
        "used",
        "used_at",
        "confirmed_at",
        "released_at",
    )

    def get_actions(self, request):
        actions = super().get_actions(request)
        actions.pop("delete_selected", None)
        return actions
