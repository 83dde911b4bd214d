from app.services.user_service import UserService
from app.services.event_service import EventService
from app.services.registration_service import RegistrationService
from app.services.attendance_service import AttendanceService
from app.services.report_service import ReportService
