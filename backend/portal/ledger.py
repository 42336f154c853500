"""
Feedback ledger: append-only reviewer comments on lecture reports.

Appending feedback to a pending report also marks it reviewed. The append
and the status advance commit together; the advance is a conditional
UPDATE so concurrent first submissions apply it exactly once.
"""
from __future__ import annotations

import logging
from typing import Optional

from django.db import transaction
from django.utils import timezone

from .exceptions import IllegalTransitionError, NotFoundError, PermissionDeniedError, store_errors
from .metrics import record_transition_metric
from .models import Feedback, Report
from .validation import clean_text, require_choice, require_text

logger = logging.getLogger(__name__)


def _require_reviewer(user) -> None:
    if user is None or not user.can_review_reports():
        raise PermissionDeniedError("Only principal lecturers and program leaders can give feedback")


def _get_feedback(feedback_id) -> Feedback:
    feedback = Feedback.objects.select_for_update().filter(pk=feedback_id).first()
    if feedback is None:
        raise NotFoundError(f"Feedback {feedback_id} not found")
    return feedback


def add_feedback(
    report_id,
    reviewer,
    text: str,
    priority: str = "medium",
    action_items: Optional[str] = None,
    reconcile: bool = True,
) -> Feedback:
    """
    Append a feedback entry to a report.

    With ``reconcile`` (the default) a report that is still ``pending`` is
    moved to ``reviewed`` in the same transaction, so on return the report
    is no longer pending. Approval and rejection stay explicit reviewer
    actions (``lifecycle.transition``). Pass ``reconcile=False`` to log
    feedback without touching the report status.
    """
    _require_reviewer(reviewer)
    feedback_text = require_text({"feedback_text": text}, "feedback_text")
    require_choice(priority, Feedback.PRIORITY_CHOICES, "priority")
    action_items = clean_text(action_items, "action_items")

    with store_errors("add feedback"), transaction.atomic():
        report = Report.objects.select_for_update().filter(pk=report_id).first()
        if report is None:
            raise NotFoundError(f"Lecture report {report_id} not found")

        feedback = Feedback.objects.create(
            report=report,
            reviewer=reviewer,
            feedback_text=feedback_text,
            action_items=action_items,
            priority=priority,
            status=Feedback.SUBMITTED,
        )

        advanced = 0
        if reconcile:
            advanced = Report.objects.filter(pk=report.pk, status=Report.PENDING).update(
                status=Report.REVIEWED,
                reviewer=reviewer,
                updated_at=timezone.now(),
            )
            if advanced:
                report.refresh_from_db(fields=["status", "reviewer", "updated_at"])

    if advanced:
        record_transition_metric(Report.PENDING, Report.REVIEWED)
        logger.info("Report %s marked reviewed by first feedback %s", report.pk, feedback.pk)
    logger.info("Feedback %s (%s) added to report %s by %s", feedback.pk, priority, report.pk, reviewer.pk)
    return feedback


def list_feedback(report_id):
    """Feedback for a report, oldest first."""
    with store_errors("list feedback"):
        if not Report.objects.filter(pk=report_id).exists():
            raise NotFoundError(f"Lecture report {report_id} not found")
        return list(
            Feedback.objects.select_related("reviewer").filter(report_id=report_id).order_by("created_at", "id")
        )


def close_feedback(feedback_id, actor) -> Feedback:
    _require_reviewer(actor)
    with store_errors("close feedback"), transaction.atomic():
        feedback = _get_feedback(feedback_id)
        if feedback.status == Feedback.CLOSED:
            return feedback
        feedback.status = Feedback.CLOSED
        feedback.save(update_fields=["status", "updated_at"])
    logger.info("Feedback %s closed by %s", feedback.pk, actor.pk)
    return feedback


def address_feedback(feedback_id, actor) -> Feedback:
    """Mark a submitted entry as addressed by the report author or a reviewer."""
    with store_errors("address feedback"), transaction.atomic():
        feedback = _get_feedback(feedback_id)
        is_author = actor is not None and feedback.report.author_id == actor.pk
        if not is_author and (actor is None or not actor.can_review_reports()):
            raise PermissionDeniedError("Only the report author or a reviewer can address feedback")
        if feedback.status == Feedback.ADDRESSED:
            return feedback
        if feedback.status == Feedback.CLOSED:
            raise IllegalTransitionError(feedback.status, Feedback.ADDRESSED)
        feedback.status = Feedback.ADDRESSED
        feedback.save(update_fields=["status", "updated_at"])
    logger.info("Feedback %s addressed by %s", feedback.pk, actor.pk)
    return feedback
