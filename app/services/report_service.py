import io
import re
from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill
from app.exceptions import NotFoundError
from app.models.enums import RegistrationStatus
from app.services.event_service import EventService
from app.services.registration_service import RegistrationService
from app.utils.dates import as_utc

XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

REGISTRATION_HEADERS = [
    "S.No", "Reg. No", "Name", "Branch", "Department", "Phone", "Registered At", "Status",
]
ATTENDANCE_HEADERS = [
    "S.No", "Reg. No", "Name", "Branch", "Department", "Phone", "Checked In At",
]


def _fmt(value) -> str:
    return as_utc(value).strftime("%Y-%m-%d %H:%M") if value else ""


def _safe_filename(title: str) -> str:
    return re.sub(r"[^A-Za-z0-9._-]+", "-", title or "event").strip("-") or "event"


class ReportService:
    """Read-only tabular projections of the registration ledger."""

    @staticmethod
    def registration_rows(event_id: int):
        registrations = RegistrationService.list_for_event(event_id)
        return [
            [
                idx,
                reg.reg_no or "",
                reg.name or "",
                reg.branch or "",
                reg.department or "",
                reg.phone or "",
                _fmt(reg.registered_at),
                reg.status or "",
            ]
            for idx, reg in enumerate(registrations, 1)
        ]

    @staticmethod
    def attendance_rows(event_id: int):
        attended = [
            reg
            for reg in RegistrationService.list_for_event(event_id)
            if reg.status == RegistrationStatus.ATTENDED.value
        ]
        return [
            [
                idx,
                reg.reg_no or "",
                reg.name or "",
                reg.branch or "",
                reg.department or "",
                reg.phone or "",
                _fmt(reg.checked_in_at),
            ]
            for idx, reg in enumerate(attended, 1)
        ]

    @staticmethod
    def build_workbook(sheet_title: str, headers, rows) -> io.BytesIO:
        wb = Workbook()
        ws = wb.active
        ws.title = sheet_title

        header_fill = PatternFill(start_color="4472C4", end_color="4472C4", fill_type="solid")
        header_font = Font(bold=True, color="FFFFFF")
        header_alignment = Alignment(horizontal="center", vertical="center")
        ws.append(headers)
        for cell in ws[1]:
            cell.fill = header_fill
            cell.font = header_font
            cell.alignment = header_alignment

        for row in rows:
            ws.append(row)

        for column in ws.columns:
            width = max(len(str(cell.value or "")) for cell in column)
            ws.column_dimensions[column[0].column_letter].width = min(width + 2, 50)

        output = io.BytesIO()
        wb.save(output)
        output.seek(0)
        return output

    @staticmethod
    def export(event_id: int, kind: str = "registrations"):
        """Returns (workbook stream, download filename) for registrations or attendance."""
        event = EventService.get_event(event_id)
        if kind == "attendance":
            rows = ReportService.attendance_rows(event_id)
            if not rows:
                raise NotFoundError("No attendance records to download")
            stream = ReportService.build_workbook("Attendance", ATTENDANCE_HEADERS, rows)
        else:
            rows = ReportService.registration_rows(event_id)
            if not rows:
                raise NotFoundError("No registrations to download")
            stream = ReportService.build_workbook("Registrations", REGISTRATION_HEADERS, rows)
        return stream, f"{_safe_filename(event.title)}-{kind}.xlsx"
