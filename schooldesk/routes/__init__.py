from .auth import auth_bp
from .base_route import base_bp
from .dashboard import dashboard_bp
from .schools import schools_bp
from .academic_sessions import academic_sessions_bp
from .terms import terms_bp
from .timetables import timetables_bp
from .classes import classes_bp
from .students import students_bp
from .staff import staff_bp
from .payrolls import payrolls_bp
from .vehicles import vehicles_bp
from .transport_routes import transport_routes_bp
from .hostels import hostels_bp
from .notices import notices_bp
from .promotions import promotions_bp
from .finance_reports import finance_reports_bp
from .notifications import notifications_bp
from .maintenance import maintenance_bp


def register_routes(app):
    app.register_blueprint(base_bp)
    app.register_blueprint(auth_bp, url_prefix='/auth')
    app.register_blueprint(schools_bp, url_prefix='/schools')
    app.register_blueprint(dashboard_bp, url_prefix='/dashboard')
    app.register_blueprint(academic_sessions_bp, url_prefix='/academic-sessions')
    app.register_blueprint(terms_bp, url_prefix='/terms')
    app.register_blueprint(timetables_bp, url_prefix='/timetables')
    app.register_blueprint(classes_bp, url_prefix='/classes')
    app.register_blueprint(students_bp, url_prefix='/students')
    app.register_blueprint(staff_bp, url_prefix='/staff')
    app.register_blueprint(payrolls_bp, url_prefix='/payrolls')
    app.register_blueprint(vehicles_bp, url_prefix='/vehicles')
    app.register_blueprint(transport_routes_bp, url_prefix='/transport-routes')
    app.register_blueprint(hostels_bp, url_prefix='/hostels')
    app.register_blueprint(notices_bp, url_prefix='/notices')
    app.register_blueprint(promotions_bp, url_prefix='/promotions')
    app.register_blueprint(finance_reports_bp, url_prefix='/finance')
    app.register_blueprint(notifications_bp, url_prefix='/notifications')
    app.register_blueprint(maintenance_bp, url_prefix='/maintenance')
