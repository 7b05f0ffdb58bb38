from django.urls import path

from .api import working_hours_api


app_name = "parks"

urlpatterns = [
    path("api/parks/<int:park_id>/working-hours/", working_hours_api, name="working_hours_api"),
]
