"""Admin domain schemas"""

from pydantic import BaseModel


class AdminStatsResponse(BaseModel):
    totalDoctors: int
    newDoctorsThisMonth: int
    activeSubscriptions: int
    subscriptionRate: int  # percent of doctors with an active subscription
    totalAppointments: int
    appointmentsThisMonth: int
    monthlyRevenue: str
