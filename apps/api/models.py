from typing import Optional, List
from datetime import datetime, timezone
from sqlmodel import Field, SQLModel, Relationship
from sqlalchemy import Column, JSON
from enum import Enum


def utcnow() -> datetime:
    """Naive UTC timestamp (SQLite drops tzinfo)"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class UserRole(str, Enum):
    PATIENT = "patient"
    DOCTOR = "doctor"

class Gender(str, Enum):
    MALE = "Male"
    FEMALE = "Female"
    OTHER = "Other"

class AppointmentStatus(str, Enum):
    PENDING = "Pending"
    CONFIRMED = "Confirmed"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"

class PaymentStatus(str, Enum):
    PENDING = "Pending"
    COMPLETED = "Completed"
    FAILED = "Failed"
    REFUNDED = "Refunded"

class ReferralStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"


class Doctor(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    email: str = Field(unique=True, index=True)
    password_hash: str
    department: str = Field(index=True)
    specialization: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    experience: int = Field(default=0, ge=0)
    fee: float = Field(ge=0)
    availability: List[dict] = Field(default_factory=list, sa_column=Column(JSON))  # [{day, start_time, end_time}]
    profile_picture: str = Field(default="")
    bio: Optional[str] = None
    phone_number: Optional[str] = None
    address: Optional[str] = None
    is_approved: bool = Field(default=False)

    # Credential lifecycle
    token_version: int = Field(default=0)
    reset_code: Optional[str] = None
    reset_code_expires: Optional[datetime] = None

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow, sa_column_kwargs={"onupdate": utcnow})

class Patient(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    email: str = Field(unique=True, index=True)
    password_hash: str
    age: int = Field(ge=0)
    gender: Gender
    blood_group: Optional[str] = None
    medical_history: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    allergies: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    phone_number: str
    address: Optional[str] = None
    profile_picture: str = Field(default="")
    emergency_contact: Optional[dict] = Field(default=None, sa_column=Column(JSON))  # {name, relationship, phone_number}

    # Credential lifecycle
    token_version: int = Field(default=0)
    reset_code: Optional[str] = None
    reset_code_expires: Optional[datetime] = None

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow, sa_column_kwargs={"onupdate": utcnow})


class Appointment(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    patient_id: int = Field(foreign_key="patient.id", index=True)
    doctor_id: int = Field(foreign_key="doctor.id", index=True)
    appointment_date: datetime = Field(index=True)
    time_slot: str
    problem: str
    status: AppointmentStatus = Field(default=AppointmentStatus.PENDING)
    notes: Optional[str] = None

    # Payment
    payment_amount: float = Field(ge=0)
    payment_status: PaymentStatus = Field(default=PaymentStatus.PENDING)
    gateway_order_id: Optional[str] = Field(default=None, index=True)
    gateway_payment_id: Optional[str] = None

    # Prescription (replaced wholesale by the owning doctor)
    prescription_medications: Optional[List[str]] = Field(default=None, sa_column=Column(JSON))
    prescription_notes: Optional[str] = None
    prescription_follow_up_date: Optional[datetime] = None

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow, sa_column_kwargs={"onupdate": utcnow})

    # Relationships
    patient: Optional[Patient] = Relationship()
    doctor: Optional[Doctor] = Relationship()


class Referral(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    patient_id: int = Field(foreign_key="patient.id")
    from_doctor_id: int = Field(foreign_key="doctor.id", index=True)
    to_doctor_id: int = Field(foreign_key="doctor.id", index=True)
    referral_date: datetime
    notes: str = Field(default="")
    status: ReferralStatus = Field(default=ReferralStatus.PENDING)

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow, sa_column_kwargs={"onupdate": utcnow})

    # Relationships
    patient: Optional[Patient] = Relationship()
    from_doctor: Optional[Doctor] = Relationship(sa_relationship_kwargs={"foreign_keys": "Referral.from_doctor_id"})
    to_doctor: Optional[Doctor] = Relationship(sa_relationship_kwargs={"foreign_keys": "Referral.to_doctor_id"})
