import enum

from sqlalchemy import (
    DDL,
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    event,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


class UserRole(str, enum.Enum):
    ADMIN = "admin"
    DOCTOR = "doctor"


class SubscriptionStatus(str, enum.Enum):
    INACTIVE = "inactive"
    ACTIVE = "active"
    TRIAL = "trial"
    CANCELLED = "cancelled"


class AppointmentStatus(str, enum.Enum):
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(255), unique=True, index=True, nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password = Column(String(255), nullable=False)  # bcrypt hash
    role = Column(String(20), nullable=False)  # admin, doctor
    first_name = Column(String(255), nullable=False)
    last_name = Column(String(255), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    # Subscription fields (simulated billing, no payment processor)
    subscription_status = Column(String(50), default="inactive", nullable=True)
    subscription_start_date = Column(DateTime, nullable=True)
    subscription_end_date = Column(DateTime, nullable=True)
    billing_customer_id = Column(String(255), nullable=True)
    billing_subscription_id = Column(String(255), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    staff = relationship("Staff", back_populates="owner")


class Staff(Base):
    __tablename__ = "staff"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)  # owning doctor
    first_name = Column(String(255), nullable=False)
    last_name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, nullable=False)
    phone = Column(String(50), nullable=True)
    role = Column(String(100), nullable=False)  # doctor, therapist, nurse...
    is_active = Column(Boolean, default=True, nullable=False)
    availability = Column(JSON, nullable=True)  # weekly template, see domain.scheduling.availability
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    owner = relationship("User", back_populates="staff")
    appointments = relationship("Appointment", back_populates="staff")
    exclusions = relationship(
        "StaffAvailabilityExclusion",
        back_populates="staff",
        order_by="StaffAvailabilityExclusion.start_time",
        cascade="all, delete-orphan",
    )
    staff_services = relationship("StaffService", back_populates="staff", cascade="all, delete-orphan")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class Patient(Base):
    __tablename__ = "patients"

    id = Column(Integer, primary_key=True, index=True)
    first_name = Column(String(255), nullable=False)
    last_name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    date_of_birth = Column(DateTime, nullable=True)
    address = Column(String(500), nullable=True)
    insurance_info = Column(JSON, nullable=True)
    medical_history = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    appointments = relationship("Appointment", back_populates="patient")


class ServiceCategory(Base):
    __tablename__ = "service_categories"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    description = Column(String(1000), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    services = relationship("Service", back_populates="category")


class Service(Base):
    __tablename__ = "services"
    __table_args__ = (
        CheckConstraint("duration > 0", name="ck_services_duration_positive"),
        CheckConstraint("capacity >= 1", name="ck_services_capacity_positive"),
    )

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    description = Column(String(1000), nullable=True)
    category_id = Column(Integer, ForeignKey("service_categories.id"), nullable=True)
    duration = Column(Integer, nullable=False)  # minutes
    capacity = Column(Integer, default=1, nullable=False)  # max patients per session
    price = Column(Numeric(10, 2), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    rules = Column(JSON, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    category = relationship("ServiceCategory", back_populates="services")
    staff_services = relationship("StaffService", back_populates="service", cascade="all, delete-orphan")

    @property
    def is_group(self) -> bool:
        return (self.capacity or 1) > 1


class StaffService(Base):
    __tablename__ = "staff_services"
    __table_args__ = (UniqueConstraint("staff_id", "service_id", name="uq_staff_service"),)

    id = Column(Integer, primary_key=True, index=True)
    staff_id = Column(Integer, ForeignKey("staff.id"), nullable=False)
    service_id = Column(Integer, ForeignKey("services.id"), nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    staff = relationship("Staff", back_populates="staff_services")
    service = relationship("Service", back_populates="staff_services")


class RecurringAppointmentRule(Base):
    __tablename__ = "recurring_appointment_rules"

    id = Column(Integer, primary_key=True, index=True)
    frequency = Column(String(20), nullable=False)  # weekly, monthly
    interval = Column(Integer, default=1, nullable=False)  # every N weeks/months
    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=True)
    days_of_week = Column(JSON, nullable=True)  # [0..6], Monday = 0
    day_of_month = Column(Integer, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    appointments = relationship("Appointment", back_populates="recurring_rule")


class Appointment(Base):
    __tablename__ = "appointments"
    __table_args__ = (
        CheckConstraint("start_time < end_time", name="ck_appointments_interval"),
        Index("ix_appointments_staff_start", "staff_id", "start_time"),
        Index("ix_appointments_patient_start", "patient_id", "start_time"),
    )

    id = Column(Integer, primary_key=True, index=True)
    patient_id = Column(Integer, ForeignKey("patients.id"), nullable=False)
    staff_id = Column(Integer, ForeignKey("staff.id"), nullable=False)
    service_id = Column(Integer, ForeignKey("services.id"), nullable=False)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    status = Column(String(20), default="scheduled", nullable=False)  # scheduled, completed, cancelled, no_show
    notes = Column(Text, nullable=True)
    recurring_rule_id = Column(Integer, ForeignKey("recurring_appointment_rules.id"), nullable=True)
    # Copied from the service at booking time so the staff overlap constraint can see it
    group_session = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    patient = relationship("Patient", back_populates="appointments")
    staff = relationship("Staff", back_populates="appointments")
    service = relationship("Service")
    recurring_rule = relationship("RecurringAppointmentRule", back_populates="appointments")


class StaffAvailabilityExclusion(Base):
    __tablename__ = "staff_availability_exclusions"
    __table_args__ = (CheckConstraint("start_time < end_time", name="ck_exclusions_interval"),)

    id = Column(Integer, primary_key=True, index=True)
    staff_id = Column(Integer, ForeignKey("staff.id"), nullable=False, index=True)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    reason = Column(String(500), nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    staff = relationship("Staff", back_populates="exclusions")


class BillingRecord(Base):
    __tablename__ = "billing_records"

    id = Column(Integer, primary_key=True, index=True)
    appointment_id = Column(Integer, ForeignKey("appointments.id"), nullable=False)
    patient_id = Column(Integer, ForeignKey("patients.id"), nullable=False)
    service_id = Column(Integer, ForeignKey("services.id"), nullable=False)
    amount = Column(Numeric(10, 2), nullable=False)
    billing_date = Column(DateTime, nullable=False)
    payment_date = Column(DateTime, nullable=True)
    payment_status = Column(String(20), default="pending")  # pending, paid, denied
    insurance_claim = Column(String(255), nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())


# Storage-level backstop for the booking invariants (PostgreSQL only).
# Patient: no two scheduled appointments may overlap.
# Staff: scheduled appointments of *different* services may not overlap, and two
# individual (non-group) appointments may not overlap even for the same service.
# Overlapping sessions of one group service stay legal; their capacity and identical
# interval rules are enforced only by the row-locked check.
_appointment_overlap_ddl = [
    DDL("CREATE EXTENSION IF NOT EXISTS btree_gist"),
    DDL(
        "ALTER TABLE appointments ADD CONSTRAINT ex_appointments_patient_overlap "
        "EXCLUDE USING gist (patient_id WITH =, tsrange(start_time, end_time, '[)') WITH &&) "
        "WHERE (status = 'scheduled')"
    ),
    DDL(
        "ALTER TABLE appointments ADD CONSTRAINT ex_appointments_staff_overlap "
        "EXCLUDE USING gist (staff_id WITH =, service_id WITH <>, "
        "tsrange(start_time, end_time, '[)') WITH &&) "
        "WHERE (status = 'scheduled')"
    ),
    DDL(
        "ALTER TABLE appointments ADD CONSTRAINT ex_appointments_staff_individual_overlap "
        "EXCLUDE USING gist (staff_id WITH =, tsrange(start_time, end_time, '[)') WITH &&) "
        "WHERE (status = 'scheduled' AND NOT group_session)"
    ),
]

for _ddl in _appointment_overlap_ddl:
    event.listen(Appointment.__table__, "after_create", _ddl.execute_if(dialect="postgresql"))
