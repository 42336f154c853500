"""
Report lifecycle: creation, status transitions and report reads.

A lecture report starts ``pending`` and can only move along the edges in
``TRANSITIONS``. ``approved`` and ``rejected`` are terminal. Every write
goes through this module or ``portal.ledger`` so the graph holds for all
rows in the table.
"""
from __future__ import annotations

import datetime
import logging
from typing import Any, Mapping, Optional

from django.contrib.auth import get_user_model
from django.db import transaction

from .exceptions import (
    IllegalTransitionError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
    store_errors,
)
from .metrics import record_transition_metric
from .models import Feedback, Report
from .validation import (
    clean_text,
    optional_id,
    optional_text,
    require_choice,
    require_date,
    require_int,
    require_text,
)

logger = logging.getLogger(__name__)

TRANSITIONS = {
    Report.PENDING: frozenset({Report.REVIEWED, Report.APPROVED, Report.REJECTED}),
    Report.REVIEWED: frozenset({Report.APPROVED, Report.REJECTED}),
    Report.APPROVED: frozenset(),
    Report.REJECTED: frozenset(),
}

REQUIRED_TEXT_FIELDS = (
    "faculty_name",
    "class_name",
    "week_of_reporting",
    "course_name",
    "course_code",
    "lecturer_name",
    "topic_taught",
    "learning_outcomes",
)
OPTIONAL_TEXT_FIELDS = ("venue", "scheduled_time", "recommendations")


def can_transition(current: str, target: str) -> bool:
    return target in TRANSITIONS.get(current, frozenset())


def _require_reviewer(user) -> None:
    if user is None or not user.can_review_reports():
        raise PermissionDeniedError("Only principal lecturers and program leaders can review reports")


def _clean_report_input(data: Mapping[str, Any]) -> dict:
    cleaned = {field: require_text(data, field) for field in REQUIRED_TEXT_FIELDS}
    for field in OPTIONAL_TEXT_FIELDS:
        cleaned[field] = optional_text(data, field)

    cleaned["date_of_lecture"] = require_date(data, "date_of_lecture")

    present = require_int(data, "students_present")
    registered = require_int(data, "students_registered")
    if registered < 1:
        raise ValidationError("students registered must be at least 1", field="students_registered")
    if present < 0:
        raise ValidationError("students present cannot be negative", field="students_present")
    if present > registered:
        raise ValidationError(
            f"students present ({present}) cannot exceed students registered ({registered})",
            field="students_present",
        )
    cleaned["students_present"] = present
    cleaned["students_registered"] = registered

    lecturer_id = optional_id(data.get("lecturer_id"), "lecturer_id")
    if lecturer_id is not None:
        lecturer = get_user_model().objects.filter(pk=lecturer_id).first()
        if lecturer is None:
            raise ValidationError(f"lecturer {lecturer_id} does not exist", field="lecturer_id")
        cleaned["lecturer"] = lecturer
    return cleaned


def create_report(author, data: Mapping[str, Any]) -> Report:
    """
    Validate and store a new lecture report as ``pending``.

    Raises ValidationError before touching the database when any required
    field is missing or the head counts are inconsistent.
    """
    if author is None or not author.can_submit_reports():
        raise PermissionDeniedError("Only lecturers and principal lecturers can submit reports")

    cleaned = _clean_report_input(data)
    with store_errors("create report"):
        report = Report.objects.create(author=author, status=Report.PENDING, **cleaned)

    logger.info(
        "Report %s created by %s for %s (%s/%s present)",
        report.pk,
        author.pk,
        report.course_code,
        report.students_present,
        report.students_registered,
    )
    return report


def get_report(report_id) -> Report:
    with store_errors("load report"):
        report = Report.objects.select_related("author", "reviewer", "lecturer").filter(pk=report_id).first()
    if report is None:
        raise NotFoundError(f"Lecture report {report_id} not found")
    return report


def list_reports(
    author_id=None,
    reviewer_id=None,
    status: Optional[str] = None,
    lecturer_name: Optional[str] = None,
    course_name: Optional[str] = None,
    lectured_since: Optional[datetime.date] = None,
):
    author_id = optional_id(author_id, "author")
    reviewer_id = optional_id(reviewer_id, "reviewer")
    qs = Report.objects.select_related("author", "reviewer", "lecturer")
    if author_id is not None:
        qs = qs.filter(author_id=author_id)
    if reviewer_id is not None:
        qs = qs.filter(reviewer_id=reviewer_id)
    if status:
        require_choice(status, Report.STATUS_CHOICES, "status")
        qs = qs.filter(status=status)
    if lecturer_name:
        qs = qs.filter(lecturer_name=lecturer_name)
    if course_name:
        qs = qs.filter(course_name=course_name)
    if lectured_since is not None:
        qs = qs.filter(date_of_lecture__gte=lectured_since)
    return qs


def _lock_report(report_id) -> Report:
    report = Report.objects.select_for_update().filter(pk=report_id).first()
    if report is None:
        raise NotFoundError(f"Lecture report {report_id} not found")
    return report


def transition(
    report_id,
    target_status: str,
    reviewer,
    feedback_text: Optional[str] = None,
    priority: str = "medium",
) -> Report:
    """
    Move a report to ``target_status`` on behalf of ``reviewer``.

    The report row stays locked until the transaction commits, so two
    reviewers acting on the same report are applied one after the other and
    the second one sees the first one's status.

    ``feedback_text`` is the quick review path: the note is appended to the
    feedback ledger and copied into ``reviewer_feedback`` in the same
    transaction. Without it no feedback row is written.
    """
    _require_reviewer(reviewer)
    require_choice(target_status, Report.STATUS_CHOICES, "status")
    note = clean_text(feedback_text, "feedback")
    if note:
        require_choice(priority, Feedback.PRIORITY_CHOICES, "priority")

    with store_errors("transition report"), transaction.atomic():
        report = _lock_report(report_id)
        current = report.status
        if not can_transition(current, target_status):
            logger.warning(
                "Rejected transition of report %s from %s to %s by %s",
                report.pk,
                current,
                target_status,
                reviewer.pk,
            )
            raise IllegalTransitionError(current, target_status)

        report.status = target_status
        report.reviewer = reviewer
        update_fields = ["status", "reviewer", "updated_at"]
        if note:
            report.reviewer_feedback = note
            update_fields.append("reviewer_feedback")
            Feedback.objects.create(report=report, reviewer=reviewer, feedback_text=note, priority=priority)
        report.save(update_fields=update_fields)

    record_transition_metric(current, target_status)
    logger.info("Report %s moved %s -> %s by %s", report.pk, current, target_status, reviewer.pk)
    return report


def withdraw_report(report_id, actor) -> None:
    """Delete a report its author no longer wants reviewed. Only pending reports can go."""
    with store_errors("withdraw report"), transaction.atomic():
        report = _lock_report(report_id)
        if actor is None or report.author_id != actor.pk:
            raise PermissionDeniedError("You can only withdraw your own lecture reports")
        if report.status != Report.PENDING:
            raise IllegalTransitionError(
                report.status,
                "withdrawn",
                message=f"Report is already {report.status} and can no longer be withdrawn",
            )
        report.delete()
    logger.info("Report %s withdrawn by %s", report_id, actor.pk)
