from django.urls import path, include
from rest_framework.routers import DefaultRouter

from .views import (
    LectureReportViewSet,
    FeedbackViewSet,
    RatingViewSet,
    report_feedback,
    attendance_monitoring,
    monitoring_export,
    dashboard_metrics,
    metrics_view,
    api_health,
)

router = DefaultRouter()
router.register(r"lecture-reports", LectureReportViewSet, basename="lecture-reports")
router.register(r"feedback", FeedbackViewSet, basename="feedback")
router.register(r"ratings", RatingViewSet, basename="ratings")

urlpatterns = [
    path("", include(router.urls)),
    path("reports/<int:report_id>/feedback", report_feedback, name="report-feedback"),
    path("monitoring/attendance", attendance_monitoring, name="monitoring-attendance"),
    path("monitoring/export", monitoring_export, name="monitoring-export"),
    path("dashboard-metrics", dashboard_metrics, name="dashboard-metrics"),
    path("metrics", metrics_view, name="metrics"),
    path("health/", api_health, name="health"),
]
