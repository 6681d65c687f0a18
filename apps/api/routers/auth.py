from fastapi import APIRouter, Depends, status, Request
from sqlmodel import Session
from database import get_session
from models import UserRole
from schemas import DoctorRegister, PatientRegister, UserLogin, DoctorAuthResponse, PatientAuthResponse, DoctorResponse, PatientResponse
from services import credentials
from utils.rate_limit import limiter, LOGIN_LIMIT, REGISTER_LIMIT
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Authentication"])

@router.post("/register/doctor", response_model=DoctorAuthResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(REGISTER_LIMIT)
def register_doctor(request: Request, doctor_data: DoctorRegister, session: Session = Depends(get_session)):
    """Register a new doctor"""
    identity, token = credentials.register(session, UserRole.DOCTOR, doctor_data.model_dump())
    return DoctorAuthResponse(token=token, user=DoctorResponse.model_validate(identity.user))

@router.post("/register/patient", response_model=PatientAuthResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(REGISTER_LIMIT)
def register_patient(request: Request, patient_data: PatientRegister, session: Session = Depends(get_session)):
    """Register a new patient"""
    identity, token = credentials.register(session, UserRole.PATIENT, patient_data.model_dump())
    return PatientAuthResponse(token=token, user=PatientResponse.model_validate(identity.user))

@router.post("/login/doctor", response_model=DoctorAuthResponse)
@limiter.limit(LOGIN_LIMIT)
def login_doctor(request: Request, login_data: UserLogin, session: Session = Depends(get_session)):
    """Login doctor"""
    identity, token = credentials.login(session, UserRole.DOCTOR, login_data.email, login_data.password)
    return DoctorAuthResponse(token=token, user=DoctorResponse.model_validate(identity.user))

@router.post("/login/patient", response_model=PatientAuthResponse)
@limiter.limit(LOGIN_LIMIT)
def login_patient(request: Request, login_data: UserLogin, session: Session = Depends(get_session)):
    """Login patient"""
    identity, token = credentials.login(session, UserRole.PATIENT, login_data.email, login_data.password)
    return PatientAuthResponse(token=token, user=PatientResponse.model_validate(identity.user))
