from rest_framework.permissions import BasePermission, SAFE_METHODS

from .models import Role


def _role(user):
    if not user or not user.is_authenticated:
        return None
    return user.effective_role


def is_reviewer(user):
    return _role(user) in [Role.PRINCIPAL_LECTURER, Role.PROGRAM_LEADER]


def is_student(user):
    return _role(user) == Role.STUDENT


def is_staff_member(user):
    return _role(user) in [Role.LECTURER, Role.PRINCIPAL_LECTURER, Role.PROGRAM_LEADER]


class ReportPermissions(BasePermission):
    def has_permission(self, request, view):
        if not request.user or not request.user.is_authenticated:
            return False
        if request.method in SAFE_METHODS:
            return True
        action = getattr(view, "action", "")
        if action == "create":
            return request.user.can_submit_reports()
        if action == "destroy":
            # ownership is checked against the report itself
            return True
        return is_reviewer(request.user)


class FeedbackPermissions(BasePermission):
    def has_permission(self, request, view):
        if not request.user or not request.user.is_authenticated:
            return False
        if request.method in SAFE_METHODS:
            return is_staff_member(request.user)
        if getattr(view, "action", "") == "address":
            # report authors address feedback on their own reports
            return is_staff_member(request.user)
        return is_reviewer(request.user)


class RatingPermissions(BasePermission):
    def has_permission(self, request, view):
        if not request.user or not request.user.is_authenticated:
            return False
        if request.method in SAFE_METHODS:
            return True
        return is_student(request.user)


class MonitoringPermissions(BasePermission):
    def has_permission(self, request, view):
        if not request.user or not request.user.is_authenticated:
            return False
        return request.user.can_view_monitoring()
