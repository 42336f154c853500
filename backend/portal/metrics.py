# backend/portal/metrics.py
from __future__ import annotations

from collections import Counter
from django.utils import timezone

_TRANSITIONS = Counter()  # keys: (from_status, to_status)
_FEEDBACK = Counter()     # keys: (priority,)
_RATINGS = Counter()      # keys: (rating,)


def record_transition_metric(from_status: str, to_status: str) -> None:
    _TRANSITIONS[(from_status or "unknown", to_status or "unknown")] += 1


def record_feedback_metric(priority: str) -> None:
    _FEEDBACK[(priority or "unknown",)] += 1


def record_rating_metric(rating: int) -> None:
    _RATINGS[(str(rating),)] += 1


def reset_metrics() -> None:
    _TRANSITIONS.clear()
    _FEEDBACK.clear()
    _RATINGS.clear()


def get_metrics_data() -> str:
    # Prometheus text format
    lines = []
    lines.append("# HELP portal_report_transitions_total Report status changes by source and target status")
    lines.append("# TYPE portal_report_transitions_total counter")
    for (from_status, to_status), value in sorted(_TRANSITIONS.items()):
        lines.append(f'portal_report_transitions_total{{from="{from_status}",to="{to_status}"}} {value}')

    lines.append("# HELP portal_feedback_total Feedback entries by priority")
    lines.append("# TYPE portal_feedback_total counter")
    for (priority,), value in sorted(_FEEDBACK.items()):
        lines.append(f'portal_feedback_total{{priority="{priority}"}} {value}')

    lines.append("# HELP portal_ratings_total Ratings submitted by star value")
    lines.append("# TYPE portal_ratings_total counter")
    for (rating,), value in sorted(_RATINGS.items()):
        lines.append(f'portal_ratings_total{{rating="{rating}"}} {value}')

    lines.append("# HELP portal_build_info Build info")
    lines.append("# TYPE portal_build_info gauge")
    lines.append(f'portal_build_info{{ts="{timezone.now().isoformat()}"}} 1')

    return "\n".join(lines) + "\n"
