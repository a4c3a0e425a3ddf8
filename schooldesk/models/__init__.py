from .base import (
    SoftDeleteMixin, TimestampMixin, TERM_STATUSES, TIMETABLE_STATUSES, PAYROLL_STATUSES, ADDON_TYPES,
    NOTICE_TYPES, PAYMENT_STATUSES, PROMOTION_STATUSES, PROMOTION_DECISIONS,
)
from .User import User, Role, TokenBlocklist
from .School import School
from .AuditLog import AuditLog
from .MaintenanceLock import MaintenanceLock
from .Academic import AcademicSession, Term, ClassLevel, ClassSection, TimeTable, timetable_sections
from .Student import Student, StudentEnrollment
from .Staff import Staff
from .Payroll import Salary, SalaryStructure, SalaryAddon, Payroll
from .Transport import Vehicle, DriverAssignment, TransportRoute, route_vehicles
from .Hostel import Hostel
from .Notice import Notice, NoticeRecipient
from .Finance import FeeType, Fee, Payment, Expense
from .Promotion import PromotionBatch, PromotionStudent, PromotionHistory
from .Notification import Notification
