from django.urls import path
from .api import health_view, live_view

urlpatterns = [
    path("health/", health_view, name="health"),
    # process liveness only; no dependency checks
    path("health/live/", live_view, name="health-live"),
]
