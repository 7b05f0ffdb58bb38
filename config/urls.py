from django.contrib import admin
from django.urls import include, path


admin.site.site_header = "Park Booking Admin"
admin.site.site_title = "Park Booking Admin"
admin.site.index_title = "Parks, Time Slots & Carts"


urlpatterns = [
    path("admin/", admin.site.urls),
    path("", include("parks.urls")),
    path("", include("scheduling.urls")),
    path("", include("cart.urls")),
]
