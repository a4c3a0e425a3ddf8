from flask import current_app
from schooldesk.extensions import db
from schooldesk.models import Notification, User, Role


def notify(users, kind, data=None, school_id=None):
    """Queue a database notification for each user; delivery happens elsewhere."""
    recipients = [user for user in users if user is not None]
    for user in {user.id: user for user in recipients}.values():
        db.session.add(Notification(
            user_id=user.id,
            school_id=school_id if school_id is not None else user.school_id,
            type=kind,
            data=data or {},
        ))
    current_app.logger.info("Queued %s notification for %d user(s)", kind, len(recipients))


def users_with_roles(school_id, *role_names):
    return (
        User.query.join(Role)
        .filter(User.school_id == school_id, User.deleted.is_(False), Role.name.in_(role_names))
        .all()
    )
