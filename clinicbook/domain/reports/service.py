"""Reports service - dashboard figures"""

from datetime import datetime, time, timedelta

from sqlalchemy.orm import Session

from ...models import Patient
from ...shared.time_utils import Clock, utcnow
from ..billing.repository import BillingRepository
from ..scheduling.calendar import CalendarFilter, CalendarQueryService


class ReportService:
    def __init__(self, db: Session, clock: Clock = utcnow):
        self.db = db
        self.clock = clock
        self.calendar = CalendarQueryService(db)

    def get_dashboard(self) -> dict:
        """Appointment counts for today and this week (Mon-Sun), active patients, revenue this month"""
        now = self.clock()
        day_start = datetime.combine(now.date(), time.min)
        week_start = day_start - timedelta(days=day_start.weekday())
        month_start = day_start.replace(day=1)
        next_month = (month_start + timedelta(days=32)).replace(day=1)

        today = self.calendar.query_range(CalendarFilter(start=day_start, end=day_start + timedelta(days=1)))
        week = self.calendar.query_range(CalendarFilter(start=week_start, end=week_start + timedelta(days=7)))
        active_patients = self.db.query(Patient).filter(Patient.is_active.is_(True)).count()
        revenue = BillingRepository.get_revenue(self.db, start=month_start, end=next_month)

        return {
            "todayAppointments": len(today),
            "weekAppointments": len(week),
            "activePatients": active_patients,
            "monthlyRevenue": f"{revenue:.2f}",
        }
