import logging
from datetime import timedelta

from django.conf import settings
from django.db import connection
from django.db.models import Avg
from django.http import HttpResponse
from django.utils import timezone

from rest_framework import mixins, viewsets, status
from rest_framework.decorators import action, api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from . import ledger, lifecycle, ratings
from .attendance import compute_attendance_rate, summarize_attendance
from .exceptions import ValidationError
from .exports import export_attendance_csv, export_attendance_pdf
from .metrics import get_metrics_data
from .models import Feedback, Rating, Report
from .permissions import FeedbackPermissions, MonitoringPermissions, RatingPermissions, ReportPermissions
from .serializers import FeedbackSerializer, RatingSerializer, ReportSerializer
from .stats import round_half_up
from .validation import coerce_int, optional_id, require_choice, require_text

logger = logging.getLogger(__name__)


def _window_days(request) -> int:
    raw = request.query_params.get("days")
    if raw in (None, ""):
        return settings.PORTAL_ATTENDANCE_WINDOW_DAYS
    days = coerce_int(raw, "days")
    if days < 0:
        raise ValidationError("days cannot be negative", field="days")
    return days


def _monitored_reports(request):
    """Reports inside the requested window; ``days=0`` means all time."""
    days = _window_days(request)
    since = timezone.localdate() - timedelta(days=days) if days else None
    reports = lifecycle.list_reports(
        lecturer_name=request.query_params.get("lecturer_name") or None,
        course_name=request.query_params.get("course_name") or None,
        lectured_since=since,
    )
    return reports, days, since


class LectureReportViewSet(viewsets.ModelViewSet):
    serializer_class = ReportSerializer
    permission_classes = [ReportPermissions]
    lookup_value_regex = r"\d+"

    def get_queryset(self):
        params = self.request.query_params
        return lifecycle.list_reports(
            author_id=params.get("author"),
            reviewer_id=params.get("reviewer"),
            status=params.get("status") or None,
            lecturer_name=params.get("lecturer_name") or None,
            course_name=params.get("course_name") or None,
        )

    def retrieve(self, request, pk=None):
        report = lifecycle.get_report(pk)
        return Response(ReportSerializer(report).data)

    def create(self, request, *args, **kwargs):
        report = lifecycle.create_report(request.user, request.data)
        return Response(ReportSerializer(report).data, status=status.HTTP_201_CREATED)

    def update(self, request, pk=None, **kwargs):
        target = request.data.get("status")
        if not target:
            raise ValidationError("status is required", field="status")
        report = lifecycle.transition(
            pk,
            target,
            request.user,
            feedback_text=request.data.get("feedback"),
            priority=request.data.get("priority") or "medium",
        )
        return Response(ReportSerializer(report).data)

    def destroy(self, request, pk=None):
        lifecycle.withdraw_report(pk, request.user)
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(["GET", "POST"])
@permission_classes([FeedbackPermissions])
def report_feedback(request, report_id):
    if request.method == "GET":
        entries = ledger.list_feedback(report_id)
        return Response(FeedbackSerializer(entries, many=True).data)

    feedback = ledger.add_feedback(
        report_id,
        request.user,
        request.data.get("feedback_text") or request.data.get("feedback") or "",
        priority=request.data.get("priority") or "medium",
        action_items=request.data.get("action_items"),
    )
    return Response(FeedbackSerializer(feedback).data, status=status.HTTP_201_CREATED)


class FeedbackViewSet(viewsets.ReadOnlyModelViewSet):
    serializer_class = FeedbackSerializer
    permission_classes = [FeedbackPermissions]
    lookup_value_regex = r"\d+"

    def get_queryset(self):
        qs = Feedback.objects.select_related("report", "reviewer")
        report_id = optional_id(self.request.query_params.get("report"), "report")
        status_q = self.request.query_params.get("status")
        if report_id is not None:
            qs = qs.filter(report_id=report_id)
        if status_q:
            require_choice(status_q, Feedback.STATUS_CHOICES, "status")
            qs = qs.filter(status=status_q)
        return qs

    @action(detail=True, methods=["post"])
    def close(self, request, pk=None):
        feedback = ledger.close_feedback(pk, request.user)
        return Response(FeedbackSerializer(feedback).data)

    @action(detail=True, methods=["post"])
    def address(self, request, pk=None):
        feedback = ledger.address_feedback(pk, request.user)
        return Response(FeedbackSerializer(feedback).data)


class RatingViewSet(mixins.ListModelMixin, mixins.CreateModelMixin, viewsets.GenericViewSet):
    serializer_class = RatingSerializer
    permission_classes = [RatingPermissions]

    def get_queryset(self):
        params = self.request.query_params
        return ratings.list_ratings(
            lecturer_name=params.get("lecturer_name") or None,
            course_name=params.get("course_name") or None,
            student_id=optional_id(params.get("student"), "student"),
        )

    def create(self, request, *args, **kwargs):
        rating = ratings.submit_rating(
            request.user,
            request.data.get("lecturer_name"),
            request.data.get("course_name"),
            request.data.get("rating"),
            review_text=request.data.get("review"),
            report_id=request.data.get("report"),
        )
        return Response(RatingSerializer(rating).data, status=status.HTTP_201_CREATED)

    @action(detail=False, methods=["get"], url_path=r"lecturer/(?P<lecturer_name>[^/]+)")
    def lecturer(self, request, lecturer_name=None):
        summary = ratings.compute_lecturer_summary(lecturer_name)
        return Response(summary.to_dict())

    @action(detail=False, methods=["get"], url_path=r"course/(?P<course_name>[^/]+)")
    def course(self, request, course_name=None):
        summary = ratings.compute_course_summary(course_name)
        return Response(summary.to_dict())

    @action(detail=False, methods=["get"])
    def check(self, request):
        params = request.query_params
        student_id = optional_id(params.get("student_id"), "student_id") or request.user.pk
        lecturer_name = require_text(params, "lecturer_name")
        course_name = require_text(params, "course_name")
        return Response({"already_rated": ratings.has_rated(student_id, lecturer_name, course_name)})


@api_view(["GET"])
@permission_classes([MonitoringPermissions])
def attendance_monitoring(request):
    reports, days, since = _monitored_reports(request)
    scope = request.query_params.get("lecturer_name") or request.query_params.get("course_name") or "all"
    summary = summarize_attendance(reports, scope=scope)
    payload = summary.to_dict()
    payload["window_days"] = days
    payload["since"] = since.isoformat() if since else None
    return Response(payload)


@api_view(["GET"])
@permission_classes([MonitoringPermissions])
def monitoring_export(request):
    requested_format = request.query_params.get("format", "csv").lower()
    if requested_format not in {"csv", "pdf"}:
        raise ValidationError("format must be csv or pdf", field="format")

    reports, days, _ = _monitored_reports(request)
    stamp = timezone.localdate().isoformat()
    if requested_format == "pdf":
        title = f"Attendance report (last {days} days)" if days else "Attendance report"
        resp = HttpResponse(export_attendance_pdf(reports, title=title), content_type="application/pdf")
        resp["Content-Disposition"] = f'attachment; filename="attendance-{stamp}.pdf"'
        return resp

    resp = HttpResponse(export_attendance_csv(reports), content_type="text/csv")
    resp["Content-Disposition"] = f'attachment; filename="attendance-{stamp}.csv"'
    return resp


@api_view(["GET"])
@permission_classes([AllowAny])
def api_health(request):
    health = {"django": "Healthy", "database": "Unknown"}

    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1;")
        health["database"] = "Healthy"
    except Exception as exc:  # noqa: BLE001
        logger.warning("Database health check failed: %s", exc)
        health["database"] = f"Unhealthy ({exc.__class__.__name__})"

    return Response(health)


@api_view(["GET"])
@permission_classes([AllowAny])
def metrics_view(request):
    """
    Prometheus text-format metrics endpoint.

    Plain text rather than JSON so it can be scraped directly.
    """
    body = get_metrics_data()
    return HttpResponse(body, content_type="text/plain; version=0.0.4; charset=utf-8")


@api_view(["GET"])
@permission_classes([MonitoringPermissions])
def dashboard_metrics(request):
    """
    JSON KPIs for the dashboard cards.

    Kept separate from the Prometheus /api/metrics endpoint so that scrapers
    get plain text while the UI consumes structured JSON.
    """
    reports, days, _ = _monitored_reports(request)
    overall = Rating.objects.aggregate(avg=Avg("rating"))["avg"]

    return Response(
        {
            "kpis": {
                "pending_reports": Report.objects.filter(status=Report.PENDING).count(),
                "reviewed_reports": Report.objects.filter(status=Report.REVIEWED).count(),
                "open_feedback": Feedback.objects.filter(
                    status__in=[Feedback.SUBMITTED, Feedback.ADDRESSED]
                ).count(),
                "total_ratings": Rating.objects.count(),
                "average_rating": round_half_up(overall, 1) if overall is not None else 0,
                "attendance_rate": compute_attendance_rate(reports),
                "attendance_window_days": days,
            }
        }
    )
