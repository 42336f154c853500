"""
Lecture reporting portal - test configuration and fixtures
"""
import datetime

import pytest
from rest_framework.test import APIClient

from portal.metrics import reset_metrics
from portal.models import Report, Role, User


def _make_user(username, role, **extra):
    return User.objects.create_user(
        username=username,
        password="testpassword123",
        email=f"{username}@example.edu",
        role=role,
        **extra,
    )


@pytest.fixture(autouse=True)
def clean_metrics():
    """Start every test with empty in-process counters"""
    reset_metrics()
    yield
    reset_metrics()


@pytest.fixture
def student(db):
    return _make_user("student1", Role.STUDENT, student_number="ST1001")


@pytest.fixture
def other_student(db):
    return _make_user("student2", Role.STUDENT, student_number="ST1002")


@pytest.fixture
def lecturer(db):
    return _make_user("lecturer1", Role.LECTURER, first_name="John", last_name="Lecturer")


@pytest.fixture
def other_lecturer(db):
    return _make_user("lecturer2", Role.LECTURER)


@pytest.fixture
def principal(db):
    return _make_user("prl1", Role.PRINCIPAL_LECTURER)


@pytest.fixture
def leader(db):
    return _make_user("pl1", Role.PROGRAM_LEADER)


@pytest.fixture
def report_data():
    """A complete, valid report submission"""
    return {
        "faculty_name": "Faculty of Information Technology",
        "class_name": "BSCIT Year 2",
        "week_of_reporting": "Week 6",
        "date_of_lecture": datetime.date.today().isoformat(),
        "course_name": "Object Oriented Programming",
        "course_code": "CS101",
        "lecturer_name": "John Lecturer",
        "students_present": 25,
        "students_registered": 30,
        "venue": "Room 4",
        "scheduled_time": "10:00",
        "topic_taught": "Inheritance",
        "learning_outcomes": "Students can extend base classes",
        "recommendations": "More lab time",
    }


@pytest.fixture
def make_report(lecturer, report_data):
    """Create reports directly, bypassing the lifecycle checks"""

    def _make(**overrides):
        fields = {**report_data, **overrides}
        fields["date_of_lecture"] = datetime.date.fromisoformat(str(fields["date_of_lecture"]))
        fields.setdefault("author", lecturer)
        fields.setdefault("status", Report.PENDING)
        return Report.objects.create(**fields)

    return _make


@pytest.fixture
def pending_report(make_report):
    return make_report()


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def client_for(api_client):
    """Return an API client authenticated as the given user"""

    def _login(user):
        api_client.force_authenticate(user=user)
        return api_client

    return _login
