from django.urls import path

from .api import (
    check_overlap_api,
    delete_template_api,
    instance_api,
    slots_api,
    templates_api,
    update_template_api,
)


app_name = "scheduling"

urlpatterns = [
    path("api/parks/<int:park_id>/slots/", slots_api, name="slots_api"),
    path("api/parks/<int:park_id>/templates/", templates_api, name="templates_api"),
    path(
        "api/parks/<int:park_id>/templates/check-overlap/",
        check_overlap_api,
        name="check_overlap_api",
    ),
    path("api/templates/<int:template_id>/update/", update_template_api, name="update_template_api"),
    path("api/templates/<int:template_id>/delete/", delete_template_api, name="delete_template_api"),
    path("api/instances/<int:instance_id>/", instance_api, name="instance_api"),
]
