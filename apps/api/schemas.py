from typing import Optional, List
from pydantic import BaseModel, EmailStr, Field, field_validator
from models import UserRole, Gender, AppointmentStatus, PaymentStatus, ReferralStatus, Appointment
from datetime import datetime, timezone


def _naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


# Request schemas
class AvailabilityWindow(BaseModel):
    day: str           # Monday .. Sunday
    start_time: str    # Format: "HH:MM"
    end_time: str      # Format: "HH:MM"

class DoctorRegister(BaseModel):
    name: str = Field(min_length=1)
    email: EmailStr
    password: str
    department: str = Field(min_length=1)
    specialization: List[str] = []
    experience: int = Field(default=0, ge=0)
    fee: float = Field(ge=0)
    phone_number: Optional[str] = None

class EmergencyContact(BaseModel):
    name: Optional[str] = None
    relationship: Optional[str] = None
    phone_number: Optional[str] = None

class PatientRegister(BaseModel):
    name: str = Field(min_length=1)
    email: EmailStr
    password: str
    age: int = Field(ge=0, le=150)
    gender: Gender
    phone_number: str = Field(min_length=1)
    address: Optional[str] = None

class UserLogin(BaseModel):
    email: EmailStr
    password: str

class PasswordChange(BaseModel):
    current_password: str = Field(min_length=1)
    new_password: str = Field(min_length=1)

class ResetRequest(BaseModel):
    email: EmailStr

class PasswordReset(BaseModel):
    email: EmailStr
    reset_code: str = Field(min_length=6, max_length=6)
    new_password: str

# Profile schemas
class DoctorProfileUpdate(BaseModel):
    name: Optional[str] = None
    email: Optional[EmailStr] = None
    department: Optional[str] = None
    specialization: Optional[List[str]] = None
    experience: Optional[int] = Field(default=None, ge=0)
    fee: Optional[float] = Field(default=None, ge=0)
    availability: Optional[List[AvailabilityWindow]] = None
    bio: Optional[str] = None
    phone_number: Optional[str] = None
    address: Optional[str] = None
    profile_picture: Optional[str] = None

class PatientProfileUpdate(BaseModel):
    name: Optional[str] = None
    email: Optional[EmailStr] = None
    age: Optional[int] = Field(default=None, ge=0, le=150)
    gender: Optional[Gender] = None
    blood_group: Optional[str] = None
    medical_history: Optional[List[str]] = None
    allergies: Optional[List[str]] = None
    phone_number: Optional[str] = None
    address: Optional[str] = None
    emergency_contact: Optional[EmergencyContact] = None
    profile_picture: Optional[str] = None

# Appointment schemas
class AppointmentCreate(BaseModel):
    doctor_id: int
    appointment_date: datetime
    time_slot: str = Field(min_length=1)
    problem: str = Field(min_length=1)
    notes: Optional[str] = None

    @field_validator("appointment_date")
    @classmethod
    def normalize_date(cls, value):
        return _naive_utc(value)

class PaymentVerify(BaseModel):
    razorpay_order_id: str
    razorpay_payment_id: str
    razorpay_signature: str
    appointment_id: int

class PaymentFailure(BaseModel):
    appointment_id: int
    razorpay_payment_id: Optional[str] = None

class AppointmentStatusUpdate(BaseModel):
    appointment_id: int
    status: AppointmentStatus

class PrescriptionCreate(BaseModel):
    appointment_id: int
    medications: List[str]
    notes: Optional[str] = None
    follow_up_date: Optional[datetime] = None

    @field_validator("follow_up_date")
    @classmethod
    def normalize_date(cls, value):
        return _naive_utc(value)

class ReferralCreate(BaseModel):
    patient_id: int
    doctor_id: int  # receiving doctor
    referral_date: datetime
    notes: str = ""

    @field_validator("referral_date")
    @classmethod
    def normalize_date(cls, value):
        return _naive_utc(value)

# Response schemas
class MessageResponse(BaseModel):
    message: str

class DoctorSummary(BaseModel):
    id: int
    name: str
    department: str
    specialization: List[str] = []
    fee: float

    class Config:
        from_attributes = True

class PatientSummary(BaseModel):
    id: int
    name: str
    email: str
    age: int
    gender: Gender
    phone_number: str

    class Config:
        from_attributes = True

class DoctorResponse(BaseModel):
    id: int
    role: UserRole = UserRole.DOCTOR
    name: str
    email: str
    department: str
    specialization: List[str] = []
    experience: int
    fee: float
    availability: List[AvailabilityWindow] = []
    bio: Optional[str] = None
    phone_number: Optional[str] = None
    address: Optional[str] = None
    profile_picture: str = ""
    is_approved: bool

    class Config:
        from_attributes = True

class PatientResponse(BaseModel):
    id: int
    role: UserRole = UserRole.PATIENT
    name: str
    email: str
    age: int
    gender: Gender
    blood_group: Optional[str] = None
    medical_history: List[str] = []
    allergies: List[str] = []
    phone_number: str
    address: Optional[str] = None
    profile_picture: str = ""
    emergency_contact: Optional[EmergencyContact] = None

    class Config:
        from_attributes = True

class DoctorAuthResponse(BaseModel):
    token: str
    token_type: str = "bearer"
    user: DoctorResponse

class PatientAuthResponse(BaseModel):
    token: str
    token_type: str = "bearer"
    user: PatientResponse

class TokenResponse(BaseModel):
    message: str
    token: str
    token_type: str = "bearer"

class PaymentInfo(BaseModel):
    amount: float
    status: PaymentStatus
    gateway_order_id: Optional[str] = None
    gateway_payment_id: Optional[str] = None

class PrescriptionInfo(BaseModel):
    medications: List[str] = []
    notes: Optional[str] = None
    follow_up_date: Optional[datetime] = None

class AppointmentResponse(BaseModel):
    id: int
    patient_id: int
    doctor_id: int
    appointment_date: datetime
    time_slot: str
    problem: str
    status: AppointmentStatus
    notes: Optional[str] = None
    payment: PaymentInfo
    prescription: Optional[PrescriptionInfo] = None
    doctor: Optional[DoctorSummary] = None
    patient: Optional[PatientSummary] = None
    created_at: datetime

    @classmethod
    def from_appointment(cls, appointment: Appointment) -> "AppointmentResponse":
        prescription = None
        if appointment.prescription_medications is not None:
            prescription = PrescriptionInfo(
                medications=appointment.prescription_medications,
                notes=appointment.prescription_notes,
                follow_up_date=appointment.prescription_follow_up_date,
            )

        return cls(
            id=appointment.id,
            patient_id=appointment.patient_id,
            doctor_id=appointment.doctor_id,
            appointment_date=appointment.appointment_date,
            time_slot=appointment.time_slot,
            problem=appointment.problem,
            status=appointment.status,
            notes=appointment.notes,
            payment=PaymentInfo(
                amount=appointment.payment_amount,
                status=appointment.payment_status,
                gateway_order_id=appointment.gateway_order_id,
                gateway_payment_id=appointment.gateway_payment_id,
            ),
            prescription=prescription,
            doctor=DoctorSummary.model_validate(appointment.doctor) if appointment.doctor else None,
            patient=PatientSummary.model_validate(appointment.patient) if appointment.patient else None,
            created_at=appointment.created_at,
        )

class GatewayOrder(BaseModel):
    id: str
    amount: int  # minor units (paise)
    currency: str
    receipt: Optional[str] = None
    key_id: str

class BookingResponse(BaseModel):
    appointment: AppointmentResponse
    order: GatewayOrder

class PaymentVerifyResponse(BaseModel):
    status: str = "success"
    appointment: AppointmentResponse

class ReferralResponse(BaseModel):
    id: int
    patient_id: int
    from_doctor_id: int
    to_doctor_id: int
    referral_date: datetime
    notes: str = ""
    status: ReferralStatus
    created_at: datetime
    patient: Optional[PatientSummary] = None
    from_doctor: Optional[DoctorSummary] = None
    to_doctor: Optional[DoctorSummary] = None

    class Config:
        from_attributes = True

class BillResponse(BaseModel):
    bill_number: str
    date: datetime
    patient_details: dict
    doctor_details: dict
    appointment_details: dict
    payment_details: dict

class PatientVisit(BaseModel):
    id: int
    appointment_date: datetime
    time_slot: str
    status: AppointmentStatus
    problem: str
    prescription_medications: Optional[List[str]] = None
    prescription_notes: Optional[str] = None

class DoctorPatientResponse(BaseModel):
    id: int
    name: str
    email: str
    phone_number: str
    age: int
    gender: Gender
    blood_group: Optional[str] = None
    medical_history: List[str] = []
    allergies: List[str] = []
    last_visit: datetime
    total_visits: int
    appointments: List[PatientVisit]

class ReportDataResponse(BaseModel):
    appointments: List[AppointmentResponse]
    referrals: List[ReferralResponse]
