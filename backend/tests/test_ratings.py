"""
Rating submission and summary tests
"""
import pytest

from portal import ratings
from portal.exceptions import DuplicateError, NotFoundError, PermissionDeniedError, ValidationError
from portal.metrics import get_metrics_data
from portal.models import Rating, Role, User


def test_average_rounds_half_up_to_one_decimal():
    assert ratings.average([4, 5]) == (4.5, 2)
    assert ratings.average([4, 4, 5]) == (4.3, 3)
    assert ratings.average([1, 2, 2, 2]) == (1.8, 4)
    # 2.25 is exactly half way
    assert ratings.average([2, 2, 2, 3]) == (2.3, 4)


def test_average_of_nothing():
    assert ratings.average([]) == (0, 0)


def test_distribution_has_every_star():
    assert ratings.distribution([5, 5, 3]) == {1: 0, 2: 0, 3: 1, 4: 0, 5: 2}


def test_summarize_groups_sorted_by_name():
    overall, count, breakdown, stars = ratings.summarize_ratings(
        [("Networks", 3), ("Databases", 5), ("Networks", 4)]
    )

    assert (overall, count) == (4.0, 3)
    assert [b.to_dict() for b in breakdown] == [
        {"name": "Databases", "average_rating": 5.0, "total_ratings": 1},
        {"name": "Networks", "average_rating": 3.5, "total_ratings": 2},
    ]
    assert stars[4] == 1


@pytest.mark.django_db
class TestSubmitRating:
    def test_store_rating(self, student):
        rating = ratings.submit_rating(student, "John Lecturer", "CS101", 4, review_text=" Clear ")

        assert rating.pk is not None
        assert rating.rating == 4
        assert rating.review == "Clear"
        assert ratings.has_rated(student.pk, "John Lecturer", "CS101")

    def test_second_rating_for_same_pair_is_duplicate(self, db):
        student = User.objects.create_user(username="student4", password="x", role=Role.STUDENT)
        ratings.submit_rating(student, "John Lecturer", "CS101", 5)

        with pytest.raises(DuplicateError):
            ratings.submit_rating(student, "John Lecturer", "CS101", 1)

        stored = Rating.objects.get(student=student)
        assert stored.rating == 5
        assert Rating.objects.count() == 1

    def test_same_student_other_course(self, student):
        ratings.submit_rating(student, "John Lecturer", "CS101", 5)
        ratings.submit_rating(student, "John Lecturer", "CS102", 3)
        assert Rating.objects.filter(student=student).count() == 2

    @pytest.mark.parametrize("value", [0, 6, -1, "ten", 4.5, True, None, ""])
    def test_rating_out_of_range(self, student, value):
        with pytest.raises(ValidationError) as excinfo:
            ratings.submit_rating(student, "John Lecturer", "CS101", value)
        assert excinfo.value.field == "rating"
        assert not Rating.objects.exists()

    def test_numeric_string_rating(self, student):
        assert ratings.submit_rating(student, "John Lecturer", "CS101", "3").rating == 3

    @pytest.mark.parametrize("field", ["lecturer_name", "course_name"])
    def test_names_are_required(self, student, field):
        kwargs = {"lecturer_name": "John Lecturer", "course_name": "CS101", field: "  "}
        with pytest.raises(ValidationError) as excinfo:
            ratings.submit_rating(student, kwargs["lecturer_name"], kwargs["course_name"], 4)
        assert excinfo.value.field == field

    @pytest.mark.parametrize("fixture_name", ["lecturer", "principal", "leader"])
    def test_only_students_rate(self, request, fixture_name):
        user = request.getfixturevalue(fixture_name)
        with pytest.raises(PermissionDeniedError):
            ratings.submit_rating(user, "John Lecturer", "CS101", 4)

    def test_linked_report_must_exist(self, student):
        with pytest.raises(NotFoundError):
            ratings.submit_rating(student, "John Lecturer", "CS101", 4, report_id=8080)

    def test_linked_report(self, student, pending_report):
        rating = ratings.submit_rating(student, "John Lecturer", "CS101", 4, report_id=pending_report.pk)
        assert rating.report == pending_report

    def test_rating_is_counted(self, student):
        ratings.submit_rating(student, "John Lecturer", "CS101", 2)
        assert 'portal_ratings_total{rating="2"} 1' in get_metrics_data()


@pytest.mark.django_db
class TestSummaries:
    def test_lecturer_without_ratings(self):
        summary = ratings.compute_lecturer_summary("Nobody Yet")

        assert summary.average_rating == 0
        assert summary.total_ratings == 0
        assert summary.per_course_breakdown == []
        assert summary.to_dict()["distribution"] == {1: 0, 2: 0, 3: 0, 4: 0, 5: 0}

    def test_lecturer_summary(self, student, other_student):
        ratings.submit_rating(student, "John Lecturer", "CS101", 5)
        ratings.submit_rating(other_student, "John Lecturer", "CS101", 4)
        ratings.submit_rating(student, "John Lecturer", "CS205", 2)
        ratings.submit_rating(student, "Jane Lecturer", "CS101", 1)

        summary = ratings.compute_lecturer_summary("John Lecturer")

        assert summary.total_ratings == 3
        assert summary.average_rating == 3.7
        assert [(b.name, b.average_rating, b.total_ratings) for b in summary.per_course_breakdown] == [
            ("CS101", 4.5, 2),
            ("CS205", 2.0, 1),
        ]
        assert summary.distribution == {1: 0, 2: 1, 3: 0, 4: 1, 5: 1}

    def test_course_summary(self, student, other_student):
        ratings.submit_rating(student, "John Lecturer", "CS101", 5)
        ratings.submit_rating(other_student, "Jane Lecturer", "CS101", 2)

        summary = ratings.compute_course_summary("CS101")

        assert summary.total_ratings == 2
        assert summary.average_rating == 3.5
        assert [b.name for b in summary.per_lecturer_breakdown] == ["Jane Lecturer", "John Lecturer"]

    def test_list_ratings_filters(self, student, other_student):
        ratings.submit_rating(student, "John Lecturer", "CS101", 5)
        theirs = ratings.submit_rating(other_student, "Jane Lecturer", "CS101", 2)

        assert list(ratings.list_ratings(lecturer_name="Jane Lecturer")) == [theirs]
        assert list(ratings.list_ratings(student_id=other_student.pk)) == [theirs]
        assert ratings.list_ratings(course_name="CS101").count() == 2

    def test_has_rated(self, student):
        assert not ratings.has_rated(student.pk, "John Lecturer", "CS101")
        ratings.submit_rating(student, "John Lecturer", "CS101", 3)
        assert ratings.has_rated(student.pk, "John Lecturer", "CS101")
        assert not ratings.has_rated(student.pk, "John Lecturer", "CS999")


@pytest.mark.django_db
@pytest.mark.parametrize("review", [5, ["great"], {"text": "great"}])
def test_review_must_be_text(student, review):
    with pytest.raises(ValidationError) as excinfo:
        ratings.submit_rating(student, "John Lecturer", "CS101", 4, review_text=review)

    assert excinfo.value.field == "review"
    assert not Rating.objects.exists()


@pytest.mark.django_db
def test_lecturer_name_must_be_text(student):
    with pytest.raises(ValidationError) as excinfo:
        ratings.submit_rating(student, 12, "CS101", 4)
    assert excinfo.value.field == "lecturer_name"
