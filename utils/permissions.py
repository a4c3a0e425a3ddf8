"""
Role to permission map.

Permissions are ``<resource>.<action>`` strings.  A role grants either an exact
permission, every action of a resource (``"payroll.*"``) or everything (``"*"``).
"""

READ_ONLY = ("view_any", "view")

ROLE_PERMISSIONS = {
    "superuser": {"*"},
    "admin": {"*"},
    "principal": {
        "academic_session.*", "term.*", "timetable.*", "class.*", "student.*", "staff.view_any", "staff.view",
        "promotion.view_any", "promotion.view", "promotion.create", "promotion.approve", "promotion.override",
        "notice.*", "hostel.view_any", "hostel.view", "finance_report.view", "dashboard.view",
    },
    "accountant": {
        "payroll.*", "finance_report.view", "finance_report.export", "staff.view_any", "staff.view",
        "notice.view_any", "notice.view", "notice.mark_read", "dashboard.view",
    },
    "teacher": {
        "academic_session.view_any", "term.view_any", "timetable.view_any", "timetable.view", "class.view_any",
        "student.view_any", "student.view", "notice.view_any", "notice.view", "notice.mark_read",
        "dashboard.view",
    },
    "warden": {"hostel.*", "student.view_any", "notice.view_any", "notice.view", "notice.mark_read"},
    "transport_manager": {
        "vehicle.*", "route.*", "staff.view_any", "notice.view_any", "notice.view", "notice.mark_read",
    },
    "student": {"notice.view_any", "notice.view", "notice.mark_read"},
}


def role_has_permission(role_name, permission):
    granted = ROLE_PERMISSIONS.get((role_name or "").lower(), set())
    if "*" in granted or permission in granted:
        return True
    resource = permission.split(".", 1)[0]
    return f"{resource}.*" in granted


def user_can(user, *permissions):
    """True when the user's role grants every one of ``permissions``."""
    if not user or not user.role:
        return False
    return all(role_has_permission(user.role.name, permission) for permission in permissions)
