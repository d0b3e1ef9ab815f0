"""Reports router - dashboard statistics"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import User
from .service import ReportService

router = APIRouter(prefix="/reports", tags=["Reports"])


class DashboardResponse(BaseModel):
    todayAppointments: int
    weekAppointments: int
    activePatients: int
    monthlyRevenue: str


def get_report_service(db: Session = Depends(get_db)) -> ReportService:
    return ReportService(db)


@router.get("/dashboard", response_model=DashboardResponse)
async def get_dashboard(
    current_user: User = Depends(get_current_user),
    service: ReportService = Depends(get_report_service),
):
    return service.get_dashboard()
