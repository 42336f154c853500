"""
Student ratings of lecturers and the statistics derived from them.

Summaries are recomputed from the rating rows on every read; nothing here
is cached or persisted.
"""
from __future__ import annotations

import logging
from collections import Counter, defaultdict
from dataclasses import asdict, dataclass, field
from decimal import Decimal
from typing import Iterable, Optional

from django.db import IntegrityError, transaction

from .exceptions import DuplicateError, NotFoundError, PermissionDeniedError, ValidationError, store_errors
from .models import Rating, Report
from .stats import round_half_up
from .validation import clean_text, coerce_int, optional_id, require_text

logger = logging.getLogger(__name__)

MIN_RATING = 1
MAX_RATING = 5


@dataclass
class RatingBreakdown:
    name: str
    average_rating: float
    total_ratings: int

    def to_dict(self):
        return asdict(self)


@dataclass
class LecturerRatingSummary:
    lecturer_name: str
    average_rating: float = 0
    total_ratings: int = 0
    per_course_breakdown: list[RatingBreakdown] = field(default_factory=list)
    distribution: dict[int, int] = field(default_factory=dict)

    def to_dict(self):
        return asdict(self)


@dataclass
class CourseRatingSummary:
    course_name: str
    average_rating: float = 0
    total_ratings: int = 0
    per_lecturer_breakdown: list[RatingBreakdown] = field(default_factory=list)
    distribution: dict[int, int] = field(default_factory=dict)

    def to_dict(self):
        return asdict(self)


def average(values: Iterable[int]) -> tuple[float, int]:
    """Return (average rounded to one decimal, count); (0, 0) for no values."""
    total = 0
    count = 0
    for value in values:
        total += value
        count += 1
    if not count:
        return 0, 0
    return round_half_up(Decimal(total) / Decimal(count), 1), count


def distribution(values: Iterable[int]) -> dict[int, int]:
    counts = Counter(values)
    return {star: counts.get(star, 0) for star in range(MIN_RATING, MAX_RATING + 1)}


def summarize_ratings(rows: Iterable[tuple[str, int]]) -> tuple[float, int, list[RatingBreakdown], dict[int, int]]:
    """
    Aggregate ``(group, rating)`` pairs.

    Returns the overall average and count, one breakdown per group sorted by
    group name, and the star distribution.
    """
    grouped: dict[str, list[int]] = defaultdict(list)
    values: list[int] = []
    for group, value in rows:
        grouped[group].append(value)
        values.append(value)

    overall, count = average(values)
    breakdown = []
    for group in sorted(grouped):
        group_avg, group_count = average(grouped[group])
        breakdown.append(RatingBreakdown(name=group, average_rating=group_avg, total_ratings=group_count))
    return overall, count, breakdown, distribution(values)


def _clean_rating_value(value) -> int:
    if value is None or value == "":
        raise ValidationError("rating is required", field="rating")
    rating = coerce_int(value, "rating")
    if not MIN_RATING <= rating <= MAX_RATING:
        raise ValidationError(f"rating must be between {MIN_RATING} and {MAX_RATING}", field="rating")
    return rating


def submit_rating(
    student,
    lecturer_name: str,
    course_name: str,
    rating_value,
    review_text: Optional[str] = None,
    report_id=None,
) -> Rating:
    """
    Store one student's rating of a lecturer for a course.

    A student rates a given lecturer/course pair once. A second submission
    is rejected with DuplicateError and the first rating is left untouched.
    """
    if student is None or not student.can_rate_lecturers():
        raise PermissionDeniedError("Only students can rate lecturers")

    lecturer_name = require_text({"lecturer_name": lecturer_name}, "lecturer_name")
    course_name = require_text({"course_name": course_name}, "course_name")
    rating = _clean_rating_value(rating_value)
    review = clean_text(review_text, "review")
    report_id = optional_id(report_id, "report_id")

    with store_errors("submit rating"):
        report = None
        if report_id is not None:
            report = Report.objects.filter(pk=report_id).first()
            if report is None:
                raise NotFoundError(f"Lecture report {report_id} not found")

        if has_rated(student.pk, lecturer_name, course_name):
            logger.warning(
                "Duplicate rating from student %s for %s / %s",
                student.pk,
                lecturer_name,
                course_name,
            )
            raise DuplicateError(f"You have already rated {lecturer_name} for {course_name}")

        try:
            with transaction.atomic():
                created = Rating.objects.create(
                    student=student,
                    lecturer_name=lecturer_name,
                    course_name=course_name,
                    report=report,
                    rating=rating,
                    review=review,
                )
        except IntegrityError as exc:
            # lost a race with a concurrent submission of the same tuple
            raise DuplicateError(f"You have already rated {lecturer_name} for {course_name}") from exc

    logger.info("Rating %s (%s stars) stored for %s / %s", created.pk, rating, lecturer_name, course_name)
    return created


def has_rated(student_id, lecturer_name: str, course_name: str) -> bool:
    return Rating.objects.filter(
        student_id=student_id,
        lecturer_name=lecturer_name,
        course_name=course_name,
    ).exists()


def list_ratings(lecturer_name: Optional[str] = None, course_name: Optional[str] = None, student_id=None):
    qs = Rating.objects.select_related("student")
    if lecturer_name:
        qs = qs.filter(lecturer_name=lecturer_name)
    if course_name:
        qs = qs.filter(course_name=course_name)
    if student_id is not None:
        qs = qs.filter(student_id=student_id)
    return qs


def compute_lecturer_summary(lecturer_name: str) -> LecturerRatingSummary:
    with store_errors("lecturer summary"):
        rows = list(Rating.objects.filter(lecturer_name=lecturer_name).values_list("course_name", "rating"))
    overall, count, breakdown, stars = summarize_ratings(rows)
    return LecturerRatingSummary(
        lecturer_name=lecturer_name,
        average_rating=overall,
        total_ratings=count,
        per_course_breakdown=breakdown,
        distribution=stars,
    )


def compute_course_summary(course_name: str) -> CourseRatingSummary:
    with store_errors("course summary"):
        rows = list(Rating.objects.filter(course_name=course_name).values_list("lecturer_name", "rating"))
    overall, count, breakdown, stars = summarize_ratings(rows)
    return CourseRatingSummary(
        course_name=course_name,
        average_rating=overall,
        total_ratings=count,
        per_lecturer_breakdown=breakdown,
        distribution=stars,
    )
