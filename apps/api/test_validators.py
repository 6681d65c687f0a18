from datetime import datetime

import pytest

from errors import ValidationFailed
from validators.password_validator import PasswordPolicy, validate_password
from validators.time_validator import validate_availability, validate_not_in_past, validate_time_range


@pytest.mark.parametrize("password,problem", [
    ("", "required"),
    ("Sh0rt!", "at least 8"),
    ("nouppercase1!", "uppercase"),
    ("NOLOWERCASE1!", "lowercase"),
    ("NoDigitsHere!", "number"),
    ("NoSpecial123", "special"),
    ("Aa1!" + "x" * 70, "72 bytes"),
])
def test_password_policy_rejections(password, problem):
    ok, message = PasswordPolicy.check(password)
    assert not ok
    assert problem in message
    with pytest.raises(ValidationFailed):
        validate_password(password)


def test_password_policy_accepts_strong_password():
    assert PasswordPolicy.check("Str0ng!Pass") == (True, "")
    validate_password("Str0ng_Pass1")


def test_time_range():
    assert validate_time_range("09:00", "17:30")
    with pytest.raises(ValidationFailed):
        validate_time_range("17:30", "09:00")
    with pytest.raises(ValidationFailed, match="HH:MM"):
        validate_time_range("9am", "5pm")


def test_availability_windows():
    assert validate_availability([{"day": "Monday", "start_time": "09:00", "end_time": "12:00"}])
    with pytest.raises(ValidationFailed, match="Invalid day"):
        validate_availability([{"day": "monday", "start_time": "09:00", "end_time": "12:00"}])


def test_not_in_past_compares_dates():
    now = datetime(2026, 5, 10, 18, 0)
    assert validate_not_in_past(datetime(2026, 5, 10, 8, 0), now=now)
    with pytest.raises(ValidationFailed, match="in the past"):
        validate_not_in_past(datetime(2026, 5, 9, 23, 59), now=now)
