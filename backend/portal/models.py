from django.conf import settings
from django.db import models
from django.contrib.auth.models import AbstractUser


class Role(models.TextChoices):
    STUDENT = "student", "Student"
    LECTURER = "lecturer", "Lecturer"
    PRINCIPAL_LECTURER = "principal_lecturer", "Principal Lecturer"
    PROGRAM_LEADER = "program_leader", "Program Leader"


REVIEWER_ROLES = frozenset({Role.PRINCIPAL_LECTURER, Role.PROGRAM_LEADER})
REPORTING_ROLES = frozenset({Role.LECTURER, Role.PRINCIPAL_LECTURER})


class User(AbstractUser):
    role = models.CharField(max_length=30, choices=Role.choices, default=Role.STUDENT)
    student_number = models.CharField(max_length=50, blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "portal_user"

    @property
    def effective_role(self):
        if self.is_superuser:
            return Role.PROGRAM_LEADER
        return Role(self.role)

    @property
    def display_name(self):
        return self.get_full_name() or self.username

    def is_reviewer(self):
        return self.effective_role in REVIEWER_ROLES

    def can_submit_reports(self):
        return self.effective_role in REPORTING_ROLES

    def can_review_reports(self):
        return self.is_reviewer()

    def can_rate_lecturers(self):
        return self.effective_role == Role.STUDENT

    def can_view_monitoring(self):
        return self.effective_role != Role.STUDENT


class Report(models.Model):
    PENDING = "pending"
    REVIEWED = "reviewed"
    APPROVED = "approved"
    REJECTED = "rejected"

    STATUS_CHOICES = [
        (PENDING, "Pending"),
        (REVIEWED, "Reviewed"),
        (APPROVED, "Approved"),
        (REJECTED, "Rejected"),
    ]

    faculty_name = models.CharField(max_length=255)
    class_name = models.CharField(max_length=255)
    week_of_reporting = models.CharField(max_length=50)
    date_of_lecture = models.DateField()
    course_name = models.CharField(max_length=255)
    course_code = models.CharField(max_length=50)

    lecturer_name = models.CharField(max_length=255)
    lecturer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="lectured_reports",
    )

    students_present = models.PositiveIntegerField()
    students_registered = models.PositiveIntegerField()
    venue = models.CharField(max_length=255, blank=True, default="")
    scheduled_time = models.CharField(max_length=50, blank=True, default="")

    topic_taught = models.TextField()
    learning_outcomes = models.TextField()
    recommendations = models.TextField(blank=True, default="")

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=PENDING)
    author = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name="authored_reports")
    reviewer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="reviewed_reports",
    )
    # legacy single-field summary, set by the quick review path
    reviewer_feedback = models.TextField(blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["status"], name="portal_report_status_idx"),
            models.Index(fields=["lecturer_name"], name="portal_report_lecturer_idx"),
            models.Index(fields=["author", "-created_at"], name="portal_report_author_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(students_present__lte=models.F("students_registered")),
                name="portal_report_present_lte_registered",
            ),
        ]

    def __str__(self):
        return f"{self.course_code} week {self.week_of_reporting} ({self.status})"


class Feedback(models.Model):
    SUBMITTED = "submitted"
    ADDRESSED = "addressed"
    CLOSED = "closed"

    STATUS_CHOICES = [
        (SUBMITTED, "Submitted"),
        (ADDRESSED, "Addressed"),
        (CLOSED, "Closed"),
    ]
    PRIORITY_CHOICES = [
        ("low", "Low"),
        ("medium", "Medium"),
        ("high", "High"),
        ("critical", "Critical"),
    ]

    report = models.ForeignKey(Report, on_delete=models.CASCADE, related_name="feedback_entries")
    reviewer = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name="feedback_given")
    feedback_text = models.TextField()
    action_items = models.TextField(blank=True, default="")
    priority = models.CharField(max_length=20, choices=PRIORITY_CHOICES, default="medium")
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=SUBMITTED)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(fields=["report", "created_at"], name="portal_feedback_report_idx"),
            models.Index(fields=["reviewer"], name="portal_feedback_reviewer_idx"),
        ]

    def __str__(self):
        return f"Feedback {self.pk} on report {self.report_id} ({self.status})"


class Rating(models.Model):
    student = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="ratings_given")
    lecturer_name = models.CharField(max_length=255)
    course_name = models.CharField(max_length=255)
    report = models.ForeignKey(Report, on_delete=models.SET_NULL, null=True, blank=True, related_name="ratings")
    rating = models.PositiveSmallIntegerField()
    review = models.TextField(blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["lecturer_name"], name="portal_rating_lecturer_idx"),
            models.Index(fields=["course_name"], name="portal_rating_course_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["student", "lecturer_name", "course_name"],
                name="portal_rating_unique_student_lecturer_course",
            ),
            models.CheckConstraint(
                condition=models.Q(rating__gte=1) & models.Q(rating__lte=5),
                name="portal_rating_between_1_and_5",
            ),
        ]

    def __str__(self):
        return f"{self.lecturer_name}/{self.course_name}={self.rating}"
