from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as DjangoUserAdmin

from .models import User, Report, Feedback, Rating


@admin.register(User)
class UserAdmin(DjangoUserAdmin):
    list_display = ("username", "email", "role", "student_number", "is_staff", "is_superuser")
    list_filter = ("role", "is_staff", "is_superuser")
    search_fields = ("username", "email", "student_number")
    ordering = ("username",)

    fieldsets = DjangoUserAdmin.fieldsets + (
        ("Portal role", {"fields": ("role", "student_number")}),
    )
    add_fieldsets = DjangoUserAdmin.add_fieldsets + (
        ("Portal role", {"fields": ("role", "student_number", "email")}),
    )


@admin.register(Report)
class ReportAdmin(admin.ModelAdmin):
    list_display = ("id", "course_code", "lecturer_name", "date_of_lecture", "status", "author", "reviewer")
    list_filter = ("status", "faculty_name")
    search_fields = ("course_code", "course_name", "lecturer_name")
    # status only changes through the review workflow
    readonly_fields = ("status", "author", "reviewer", "reviewer_feedback", "created_at", "updated_at")

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(Feedback)
class FeedbackAdmin(admin.ModelAdmin):
    list_display = ("id", "report", "reviewer", "priority", "status", "created_at")
    list_filter = ("priority", "status")
    readonly_fields = ("report", "reviewer", "feedback_text", "action_items", "priority", "status", "created_at", "updated_at")

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(Rating)
class RatingAdmin(admin.ModelAdmin):
    list_display = ("id", "lecturer_name", "course_name", "rating", "student", "created_at")
    list_filter = ("rating",)
    search_fields = ("lecturer_name", "course_name")
    readonly_fields = ("student", "lecturer_name", "course_name", "report", "rating", "review", "created_at", "updated_at")

    def has_add_permission(self, request):
        return False
