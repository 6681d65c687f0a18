"""End-to-end flows through the HTTP API"""
from datetime import timedelta

import pytest

from conftest import STRONG_PASSWORD
from models import Doctor, Patient, utcnow

DOCTOR = {
    "name": "Dr. Asha Rao",
    "email": "asha.rao@cityhospital.in",
    "password": STRONG_PASSWORD,
    "department": "Cardiology",
    "specialization": ["Interventional Cardiology"],
    "experience": 12,
    "fee": 500,
}

PATIENT = {
    "name": "Ravi Kumar",
    "email": "ravi.kumar@cityhospital.in",
    "password": STRONG_PASSWORD,
    "age": 34,
    "gender": "Male",
    "phone_number": "+919876543210",
}


def _approve(session, doctor_id):
    doctor = session.get(Doctor, doctor_id)
    doctor.is_approved = True
    session.add(doctor)
    session.commit()


@pytest.fixture
def doctor_auth(client, session):
    response = client.post("/api/auth/register/doctor", json=DOCTOR)
    assert response.status_code == 201
    body = response.json()
    _approve(session, body["user"]["id"])
    return body


@pytest.fixture
def patient_auth(client):
    response = client.post("/api/auth/register/patient", json=PATIENT)
    assert response.status_code == 201
    return response.json()


def _book(client, bearer, patient_auth, doctor_auth, days_ahead=2):
    response = client.post(
        "/api/patients/appointment",
        json={
            "doctor_id": doctor_auth["user"]["id"],
            "appointment_date": (utcnow() + timedelta(days=days_ahead)).isoformat(),
            "time_slot": "10:00-10:30",
            "problem": "Chest pain on exertion",
        },
        headers=bearer(patient_auth["token"]),
    )
    assert response.status_code == 201, response.text
    return response.json()


def _verify(client, bearer, gateway, patient_auth, booking, payment_id="pay_e2e_001"):
    order_id = booking["order"]["id"]
    return client.post(
        "/api/patients/payment/verify",
        json={
            "razorpay_order_id": order_id,
            "razorpay_payment_id": payment_id,
            "razorpay_signature": gateway.sign(order_id, payment_id),
            "appointment_id": booking["appointment"]["id"],
        },
        headers=bearer(patient_auth["token"]),
    )


def test_root_and_health(client):
    assert client.get("/").status_code == 200
    assert client.get("/health").json() == {"status": "healthy"}


def test_security_headers(client, bearer, patient_auth):
    response = client.get("/health")
    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["X-Frame-Options"] == "DENY"
    assert "Cache-Control" not in response.headers

    response = client.get("/api/patients/profile", headers=bearer(patient_auth["token"]))
    assert response.headers["Cache-Control"] == "no-store"


def test_register_and_login(client, patient_auth):
    assert patient_auth["token_type"] == "bearer"
    assert patient_auth["user"]["role"] == "patient"
    assert "password_hash" not in patient_auth["user"]

    response = client.post("/api/auth/login/patient", json={"email": "RAVI.KUMAR@cityhospital.in", "password": STRONG_PASSWORD})
    assert response.status_code == 200
    assert response.json()["user"]["email"] == "ravi.kumar@cityhospital.in"

    response = client.post("/api/auth/login/patient", json={"email": PATIENT["email"], "password": "Wr0ng!Pass"})
    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid email or password"


def test_duplicate_registration_conflicts(client, patient_auth):
    response = client.post("/api/auth/register/patient", json=PATIENT)
    assert response.status_code == 409
    assert response.json()["detail"] == "Patient already exists"


def test_weak_password_is_rejected(client):
    response = client.post("/api/auth/register/doctor", json={**DOCTOR, "password": "alllowercase1!"})
    assert response.status_code == 400
    assert "uppercase" in response.json()["detail"]


def test_booking_payment_and_completion(client, bearer, gateway, doctor_auth, patient_auth):
    booking = _book(client, bearer, patient_auth, doctor_auth)

    assert booking["order"]["amount"] == 50000
    assert booking["order"]["currency"] == "INR"
    assert booking["order"]["key_id"] == "rzp_test_key"
    assert booking["appointment"]["status"] == "Pending"
    assert booking["appointment"]["payment"]["status"] == "Pending"

    response = _verify(client, bearer, gateway, patient_auth, booking)
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "success"
    assert body["appointment"]["status"] == "Confirmed"
    assert body["appointment"]["payment"]["status"] == "Completed"

    response = client.put(
        "/api/doctors/appointment/status",
        json={"appointment_id": booking["appointment"]["id"], "status": "Completed"},
        headers=bearer(doctor_auth["token"]),
    )
    assert response.status_code == 200
    assert response.json()["status"] == "Completed"

    response = client.put(
        f"/api/patients/appointment/{booking['appointment']['id']}/cancel",
        headers=bearer(patient_auth["token"]),
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Cannot cancel completed appointment"


def test_cancelling_paid_appointment_refunds(client, bearer, gateway, doctor_auth, patient_auth):
    booking = _book(client, bearer, patient_auth, doctor_auth)
    _verify(client, bearer, gateway, patient_auth, booking)

    response = client.put(
        f"/api/patients/appointment/{booking['appointment']['id']}/cancel",
        headers=bearer(patient_auth["token"]),
    )
    assert response.status_code == 200
    assert response.json()["status"] == "Cancelled"
    assert response.json()["payment"]["status"] == "Refunded"


def test_tampered_signature_is_rejected(client, bearer, gateway, doctor_auth, patient_auth):
    booking = _book(client, bearer, patient_auth, doctor_auth)
    order_id = booking["order"]["id"]
    signature = gateway.sign(order_id, "pay_e2e_001")
    tampered = ("0" if signature[0] != "0" else "1") + signature[1:]

    response = client.post(
        "/api/patients/payment/verify",
        json={
            "razorpay_order_id": order_id,
            "razorpay_payment_id": "pay_e2e_001",
            "razorpay_signature": tampered,
            "appointment_id": booking["appointment"]["id"],
        },
        headers=bearer(patient_auth["token"]),
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid signature"


def test_failed_payment_then_retry(client, bearer, gateway, doctor_auth, patient_auth):
    booking = _book(client, bearer, patient_auth, doctor_auth)

    response = client.post(
        "/api/patients/payment/failed",
        json={"appointment_id": booking["appointment"]["id"], "razorpay_payment_id": "pay_declined"},
        headers=bearer(patient_auth["token"]),
    )
    assert response.status_code == 200
    assert response.json()["payment"]["status"] == "Failed"

    response = _verify(client, bearer, gateway, patient_auth, booking, payment_id="pay_retry")
    assert response.status_code == 200
    assert response.json()["appointment"]["payment"]["status"] == "Completed"


def test_booking_in_the_past_is_rejected(client, bearer, doctor_auth, patient_auth):
    response = client.post(
        "/api/patients/appointment",
        json={
            "doctor_id": doctor_auth["user"]["id"],
            "appointment_date": (utcnow() - timedelta(days=2)).isoformat(),
            "time_slot": "10:00-10:30",
            "problem": "Fever",
        },
        headers=bearer(patient_auth["token"]),
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Cannot book appointments in the past"


def test_booking_with_unknown_doctor(client, bearer, patient_auth):
    response = client.post(
        "/api/patients/appointment",
        json={
            "doctor_id": 999,
            "appointment_date": (utcnow() + timedelta(days=1)).isoformat(),
            "time_slot": "10:00-10:30",
            "problem": "Fever",
        },
        headers=bearer(patient_auth["token"]),
    )
    assert response.status_code == 404


def test_listings_and_bill(client, bearer, gateway, doctor_auth, patient_auth):
    booking = _book(client, bearer, patient_auth, doctor_auth)
    _verify(client, bearer, gateway, patient_auth, booking)

    mine = client.get("/api/patients/appointments", headers=bearer(patient_auth["token"])).json()
    assert [a["id"] for a in mine] == [booking["appointment"]["id"]]
    assert mine[0]["doctor"]["name"] == "Dr. Asha Rao"

    schedule = client.get("/api/doctors/appointments", headers=bearer(doctor_auth["token"])).json()
    assert schedule[0]["patient"]["name"] == "Ravi Kumar"

    bill = client.get(f"/api/patients/bill/{booking['appointment']['id']}", headers=bearer(patient_auth["token"]))
    assert bill.status_code == 200
    assert bill.json()["payment_details"]["payment_id"] == "pay_e2e_001"

    patients = client.get("/api/doctors/patients", headers=bearer(doctor_auth["token"])).json()
    assert patients[0]["email"] == "ravi.kumar@cityhospital.in"


def test_prescription(client, bearer, doctor_auth, patient_auth):
    booking = _book(client, bearer, patient_auth, doctor_auth)

    response = client.post(
        "/api/doctors/appointment/prescription",
        json={
            "appointment_id": booking["appointment"]["id"],
            "medications": ["Aspirin 75mg"],
            "notes": "After breakfast",
        },
        headers=bearer(doctor_auth["token"]),
    )
    assert response.status_code == 200
    assert response.json()["prescription"]["medications"] == ["Aspirin 75mg"]


def test_change_password_revokes_old_token(client, bearer, patient_auth):
    old_token = patient_auth["token"]

    response = client.put(
        "/api/patients/change-password",
        json={"current_password": STRONG_PASSWORD, "new_password": "N3w!Passw0rd"},
        headers=bearer(old_token),
    )
    assert response.status_code == 200
    new_token = response.json()["token"]

    response = client.get("/api/patients/profile", headers=bearer(old_token))
    assert response.status_code == 401
    assert response.json()["detail"] == "Token has been revoked"
    assert client.get("/api/patients/profile", headers=bearer(new_token)).status_code == 200


def test_password_reset_round_trip(client, session, patient_auth):
    response = client.post("/api/patients/request-reset", json={"email": PATIENT["email"]})
    assert response.status_code == 200

    patient = session.get(Patient, patient_auth["user"]["id"])
    session.refresh(patient)
    reset = {"email": PATIENT["email"], "reset_code": patient.reset_code, "new_password": "N3w!Passw0rd"}

    response = client.post("/api/patients/reset-password", json=reset)
    assert response.status_code == 200
    assert response.json()["token"]

    response = client.post("/api/patients/reset-password", json=reset)
    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid or expired reset code"

    response = client.post("/api/auth/login/patient", json={"email": PATIENT["email"], "password": "N3w!Passw0rd"})
    assert response.status_code == 200


def test_request_reset_for_unknown_doctor(client):
    response = client.post("/api/doctors/request-reset", json={"email": "ghost@cityhospital.in"})
    assert response.status_code == 404


def test_doctor_profile_update(client, bearer, doctor_auth):
    headers = bearer(doctor_auth["token"])

    response = client.put(
        "/api/doctors/profile",
        json={"availability": [{"day": "Funday", "start_time": "09:00", "end_time": "12:00"}]},
        headers=headers,
    )
    assert response.status_code == 400

    response = client.put(
        "/api/doctors/profile",
        json={"availability": [{"day": "Monday", "start_time": "12:00", "end_time": "09:00"}]},
        headers=headers,
    )
    assert response.status_code == 400

    response = client.put(
        "/api/doctors/profile",
        json={"bio": "Cath lab lead", "availability": [{"day": "Monday", "start_time": "09:00", "end_time": "12:00"}]},
        headers=headers,
    )
    assert response.status_code == 200
    assert response.json()["bio"] == "Cath lab lead"
    assert response.json()["availability"][0]["day"] == "Monday"

    # The password is untouched by a profile update
    response = client.post("/api/auth/login/doctor", json={"email": DOCTOR["email"], "password": STRONG_PASSWORD})
    assert response.status_code == 200


def test_doctor_directory(client, session, bearer, doctor_auth, patient_auth):
    pending = client.post(
        "/api/auth/register/doctor",
        json={**DOCTOR, "name": "Dr. Unapproved", "email": "pending@cityhospital.in"},
    ).json()
    colleague = client.post(
        "/api/auth/register/doctor",
        json={**DOCTOR, "name": "Dr. Bharat Menon", "email": "bharat.menon@cityhospital.in"},
    ).json()
    _approve(session, colleague["user"]["id"])

    names = [d["name"] for d in client.get("/api/doctors/all", headers=bearer(patient_auth["token"])).json()]
    assert names == ["Dr. Asha Rao", "Dr. Bharat Menon"]

    names = [d["name"] for d in client.get("/api/doctors/all", headers=bearer(doctor_auth["token"])).json()]
    assert names == ["Dr. Bharat Menon"]

    department = client.get("/api/doctors/department/Cardiology").json()
    assert {d["id"] for d in department} == {
        doctor_auth["user"]["id"], pending["user"]["id"], colleague["user"]["id"]
    }


def test_doctor_directory_ignores_unusable_tokens(client, bearer, doctor_auth, patient_auth):
    stale_patient = patient_auth["token"]
    stale_doctor = doctor_auth["token"]
    assert client.post("/api/patients/logout-all", headers=bearer(stale_patient)).status_code == 200
    assert client.post("/api/doctors/logout-all", headers=bearer(stale_doctor)).status_code == 200

    for token in (stale_patient, stale_doctor, "not-a-jwt"):
        response = client.get("/api/doctors/all", headers=bearer(token))
        assert response.status_code == 200
        assert [d["name"] for d in response.json()] == ["Dr. Asha Rao"]

    # Protected endpoints still refuse the revoked token
    assert client.get("/api/patients/profile", headers=bearer(stale_patient)).status_code == 401


def test_referral_flow_and_report_data(client, session, bearer, doctor_auth, patient_auth):
    colleague = client.post(
        "/api/auth/register/doctor",
        json={**DOCTOR, "name": "Dr. Vikram Shah", "email": "vikram.shah@cityhospital.in", "department": "Neurology"},
    ).json()

    response = client.post(
        "/api/doctors/referral",
        json={
            "patient_id": patient_auth["user"]["id"],
            "doctor_id": colleague["user"]["id"],
            "referral_date": utcnow().isoformat(),
            "notes": "Recurring migraines",
        },
        headers=bearer(doctor_auth["token"]),
    )
    assert response.status_code == 201
    referral = response.json()
    assert referral["status"] == "pending"
    assert referral["to_doctor"]["name"] == "Dr. Vikram Shah"

    response = client.put(f"/api/doctors/referral/{referral['id']}/accept", headers=bearer(doctor_auth["token"]))
    assert response.status_code == 403

    response = client.put(f"/api/doctors/referral/{referral['id']}/maybe", headers=bearer(colleague["token"]))
    assert response.status_code == 400

    response = client.put(f"/api/doctors/referral/{referral['id']}/accept", headers=bearer(colleague["token"]))
    assert response.status_code == 200
    assert response.json()["status"] == "accepted"

    received = client.get("/api/doctors/referrals/received", headers=bearer(colleague["token"])).json()
    assert [r["id"] for r in received] == [referral["id"]]

    today = utcnow().date().isoformat()
    response = client.get(
        "/api/reports",
        params={"start_date": today, "end_date": today},
        headers=bearer(doctor_auth["token"]),
    )
    assert response.status_code == 200
    assert [r["id"] for r in response.json()["referrals"]] == [referral["id"]]


def test_reports_are_for_doctors_only(client, bearer, patient_auth, doctor_auth):
    today = utcnow().date().isoformat()
    response = client.get(
        "/api/reports",
        params={"start_date": today, "end_date": today},
        headers=bearer(patient_auth["token"]),
    )
    assert response.status_code == 403

    response = client.get("/api/doctors/reports", params={"time_range": "forever"}, headers=bearer(doctor_auth["token"]))
    assert response.status_code == 400

    response = client.get("/api/doctors/reports", headers=bearer(doctor_auth["token"]))
    assert response.status_code == 200
    assert response.json()["time_range"] == "month"
