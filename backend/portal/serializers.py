from rest_framework import serializers

from .attendance import attendance_rate_for
from .models import Feedback, Rating, Report
from .stats import round_half_up


class ReportSerializer(serializers.ModelSerializer):
    author_name = serializers.CharField(source="author.display_name", read_only=True)
    reviewer_name = serializers.CharField(source="reviewer.display_name", read_only=True, default=None)
    attendance_rate = serializers.SerializerMethodField()

    class Meta:
        model = Report
        fields = "__all__"
        read_only_fields = ["status", "author", "reviewer", "reviewer_feedback", "created_at", "updated_at"]

    def get_attendance_rate(self, obj):
        rate = attendance_rate_for(obj)
        return round_half_up(rate) if rate is not None else None


class FeedbackSerializer(serializers.ModelSerializer):
    reviewer_name = serializers.CharField(source="reviewer.display_name", read_only=True)
    report_status = serializers.CharField(source="report.status", read_only=True)

    class Meta:
        model = Feedback
        fields = "__all__"


class RatingSerializer(serializers.ModelSerializer):
    student_name = serializers.CharField(source="student.display_name", read_only=True)

    class Meta:
        model = Rating
        fields = "__all__"
