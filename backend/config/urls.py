from django.contrib import admin
from django.http import HttpResponse
from django.urls import path, include


def index(request):
    return HttpResponse(
        "Lecture reporting backend is running. Call the API under /api/.",
        content_type="text/plain",
    )


urlpatterns = [
    path("", index),
    path("admin/", admin.site.urls),
    path("api/", include("portal.urls")),
]
