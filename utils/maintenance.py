from schooldesk.models import MaintenanceLock

MAINTENANCE_ROLES = {"superuser", "admin"}


def is_school_locked(school_id):
    lock = MaintenanceLock.query.filter_by(school_id=school_id).first()
    return lock.locked if lock else False
