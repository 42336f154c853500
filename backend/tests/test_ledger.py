"""
Feedback ledger tests
"""
import pytest

from portal import ledger, lifecycle
from portal.exceptions import IllegalTransitionError, NotFoundError, PermissionDeniedError, ValidationError
from portal.metrics import get_metrics_data
from portal.models import Feedback, Report


pytestmark = pytest.mark.django_db


class TestAddFeedback:
    def test_first_feedback_marks_report_reviewed(self, principal, pending_report):
        feedback = ledger.add_feedback(pending_report.pk, principal, "Good pacing", priority="high")

        assert feedback.status == Feedback.SUBMITTED
        assert feedback.priority == "high"
        assert feedback.report.status == Report.REVIEWED
        pending_report.refresh_from_db()
        assert pending_report.status == Report.REVIEWED
        assert pending_report.reviewer == principal

    def test_reconciliation_happens_once(self, principal, leader, pending_report):
        ledger.add_feedback(pending_report.pk, principal, "First note")
        ledger.add_feedback(pending_report.pk, leader, "Second note")

        pending_report.refresh_from_db()
        assert pending_report.status == Report.REVIEWED
        # the reviewer recorded is whoever moved it out of pending
        assert pending_report.reviewer == principal
        assert 'portal_report_transitions_total{from="pending",to="reviewed"} 1' in get_metrics_data()

    def test_feedback_on_terminal_report_keeps_status(self, principal, make_report):
        report = make_report(status=Report.APPROVED)
        ledger.add_feedback(report.pk, principal, "Follow up next term")

        report.refresh_from_db()
        assert report.status == Report.APPROVED
        assert Feedback.objects.filter(report=report).count() == 1

    def test_feedback_after_review_keeps_approval_explicit(self, principal, make_report):
        report = make_report(status=Report.REVIEWED)
        ledger.add_feedback(report.pk, principal, "Another note")
        report.refresh_from_db()
        assert report.status == Report.REVIEWED

    def test_reconcile_can_be_skipped(self, principal, pending_report):
        ledger.add_feedback(pending_report.pk, principal, "Private note", reconcile=False)
        pending_report.refresh_from_db()
        assert pending_report.status == Report.PENDING

    def test_empty_text_is_rejected(self, principal, pending_report):
        with pytest.raises(ValidationError) as excinfo:
            ledger.add_feedback(pending_report.pk, principal, "   ")

        assert excinfo.value.field == "feedback_text"
        assert not Feedback.objects.exists()
        pending_report.refresh_from_db()
        assert pending_report.status == Report.PENDING

    def test_unknown_priority(self, principal, pending_report):
        with pytest.raises(ValidationError) as excinfo:
            ledger.add_feedback(pending_report.pk, principal, "Note", priority="urgent")
        assert excinfo.value.field == "priority"

    def test_missing_report(self, principal):
        with pytest.raises(NotFoundError):
            ledger.add_feedback(98765, principal, "Note")
        assert not Feedback.objects.exists()

    @pytest.mark.parametrize("fixture_name", ["student", "lecturer"])
    def test_only_reviewers_give_feedback(self, request, pending_report, fixture_name):
        user = request.getfixturevalue(fixture_name)
        with pytest.raises(PermissionDeniedError):
            ledger.add_feedback(pending_report.pk, user, "Note")
        pending_report.refresh_from_db()
        assert pending_report.status == Report.PENDING

    def test_action_items_are_stored(self, principal, pending_report):
        feedback = ledger.add_feedback(pending_report.pk, principal, "Note", action_items=" Update slides ")
        assert feedback.action_items == "Update slides"

    def test_feedback_is_counted_by_priority(self, principal, pending_report):
        ledger.add_feedback(pending_report.pk, principal, "Note", priority="critical")
        assert 'portal_feedback_total{priority="critical"} 1' in get_metrics_data()


class TestListFeedback:
    def test_oldest_first(self, principal, leader, pending_report):
        first = ledger.add_feedback(pending_report.pk, principal, "One")
        second = ledger.add_feedback(pending_report.pk, leader, "Two")
        third = ledger.add_feedback(pending_report.pk, principal, "Three")

        assert ledger.list_feedback(pending_report.pk) == [first, second, third]

    def test_quick_review_note_shows_up(self, principal, pending_report):
        lifecycle.transition(pending_report.pk, Report.APPROVED, principal, feedback_text="Approved as is")
        entries = ledger.list_feedback(pending_report.pk)
        assert [entry.feedback_text for entry in entries] == ["Approved as is"]

    def test_empty_ledger(self, pending_report):
        assert ledger.list_feedback(pending_report.pk) == []

    def test_missing_report(self, db):
        with pytest.raises(NotFoundError):
            ledger.list_feedback(5555)


class TestFeedbackStatus:
    def test_close(self, principal, pending_report):
        feedback = ledger.add_feedback(pending_report.pk, principal, "Note")
        closed = ledger.close_feedback(feedback.pk, principal)
        assert closed.status == Feedback.CLOSED
        # closing twice is a no-op
        assert ledger.close_feedback(feedback.pk, principal).status == Feedback.CLOSED

    def test_lecturer_cannot_close(self, principal, lecturer, pending_report):
        feedback = ledger.add_feedback(pending_report.pk, principal, "Note")
        with pytest.raises(PermissionDeniedError):
            ledger.close_feedback(feedback.pk, lecturer)

    def test_author_addresses_feedback(self, principal, lecturer, pending_report):
        feedback = ledger.add_feedback(pending_report.pk, principal, "Note")
        addressed = ledger.address_feedback(feedback.pk, lecturer)
        assert addressed.status == Feedback.ADDRESSED

    def test_other_lecturer_cannot_address(self, principal, other_lecturer, pending_report):
        feedback = ledger.add_feedback(pending_report.pk, principal, "Note")
        with pytest.raises(PermissionDeniedError):
            ledger.address_feedback(feedback.pk, other_lecturer)

    def test_closed_feedback_cannot_be_addressed(self, principal, lecturer, pending_report):
        feedback = ledger.add_feedback(pending_report.pk, principal, "Note")
        ledger.close_feedback(feedback.pk, principal)
        with pytest.raises(IllegalTransitionError):
            ledger.address_feedback(feedback.pk, lecturer)

    def test_missing_feedback(self, principal):
        with pytest.raises(NotFoundError):
            ledger.close_feedback(31337, principal)


@pytest.mark.parametrize("action_items", [["a"], 5, {"step": 1}])
def test_action_items_must_be_text(principal, pending_report, action_items):
    with pytest.raises(ValidationError) as excinfo:
        ledger.add_feedback(pending_report.pk, principal, "Note", action_items=action_items)

    assert excinfo.value.field == "action_items"
    assert not Feedback.objects.exists()
    pending_report.refresh_from_db()
    assert pending_report.status == Report.PENDING


def test_feedback_text_must_be_text(principal, pending_report):
    with pytest.raises(ValidationError) as excinfo:
        ledger.add_feedback(pending_report.pk, principal, 42)
    assert excinfo.value.field == "feedback_text"
