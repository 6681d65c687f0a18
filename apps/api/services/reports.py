"""Read-side aggregates over a doctor's appointments and referrals"""
import logging
from datetime import date, datetime, time, timedelta
from typing import Optional

from sqlmodel import Session, or_, select

from errors import InvalidArgument
from models import Appointment, AppointmentStatus, PaymentStatus, Referral, utcnow

logger = logging.getLogger(__name__)

TIME_RANGES = {
    "week": timedelta(days=7),
    "month": timedelta(days=30),
    "year": timedelta(days=365),
}

AGE_GROUPS = ("Under 18", "18-30", "31-45", "46-60", "Over 60")


def age_group(age: int) -> str:
    if age < 18:
        return "Under 18"
    if age <= 30:
        return "18-30"
    if age <= 45:
        return "31-45"
    if age <= 60:
        return "46-60"
    return "Over 60"


def doctor_report(session: Session, doctor_id: int, time_range: str = "month", now: Optional[datetime] = None) -> dict:
    if time_range not in TIME_RANGES:
        raise InvalidArgument(f"Invalid time range: {time_range}. Use one of {', '.join(TIME_RANGES)}")

    end = now or utcnow()
    start = end - TIME_RANGES[time_range]

    appointments = session.exec(
        select(Appointment)
        .where(
            Appointment.doctor_id == doctor_id,
            Appointment.appointment_date >= start,
            Appointment.appointment_date <= end,
        )
        .order_by(Appointment.appointment_date.desc())
    ).all()

    by_status = {s: 0 for s in AppointmentStatus}
    revenue = 0.0
    genders = {}
    age_groups = {group: 0 for group in AGE_GROUPS}

    for appointment in appointments:
        by_status[appointment.status] += 1
        if appointment.payment_status == PaymentStatus.COMPLETED:
            revenue += appointment.payment_amount

        patient = appointment.patient
        if patient is not None:
            gender = patient.gender.value
            genders[gender] = genders.get(gender, 0) + 1
            if patient.age is not None:
                age_groups[age_group(patient.age)] += 1

    total = len(appointments)
    completed = by_status[AppointmentStatus.COMPLETED]

    return {
        "time_range": time_range,
        "metrics": {
            "total_appointments": total,
            "completed_appointments": completed,
            "pending_appointments": by_status[AppointmentStatus.PENDING],
            "confirmed_appointments": by_status[AppointmentStatus.CONFIRMED],
            "cancelled_appointments": by_status[AppointmentStatus.CANCELLED],
            "completion_rate": round(completed / total * 100) if total else 0,
            "total_revenue": revenue,
        },
        "demographics": {
            "gender_distribution": genders,
            "age_group_distribution": age_groups,
        },
        "recent_appointments": [
            {
                "id": a.id,
                "patient_name": a.patient.name if a.patient else "Unknown",
                "date": a.appointment_date,
                "status": a.status,
                "revenue": a.payment_amount if a.payment_status == PaymentStatus.COMPLETED else 0,
            }
            for a in appointments[:5]
        ],
    }


def report_data(session: Session, doctor_id: int, start_date: date, end_date: date) -> dict:
    """Appointments and referrals of a doctor between two dates, both inclusive"""
    if end_date < start_date:
        raise InvalidArgument("end_date must not be before start_date")

    start = datetime.combine(start_date, time.min)
    end = datetime.combine(end_date, time.max)
    logger.info(f"Report data for doctor {doctor_id}: {start_date} to {end_date}")

    appointments = session.exec(
        select(Appointment)
        .where(
            Appointment.doctor_id == doctor_id,
            Appointment.appointment_date >= start,
            Appointment.appointment_date <= end,
        )
        .order_by(Appointment.appointment_date)
    ).all()

    referrals = session.exec(
        select(Referral)
        .where(
            or_(Referral.from_doctor_id == doctor_id, Referral.to_doctor_id == doctor_id),
            Referral.created_at >= start,
            Referral.created_at <= end,
        )
        .order_by(Referral.created_at)
    ).all()

    return {"appointments": appointments, "referrals": referrals}
