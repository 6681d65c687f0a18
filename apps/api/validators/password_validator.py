"""
Password validation utilities
Enforces the password policy for registration, change and reset
"""

import re
from typing import Tuple
from errors import ValidationFailed

SPECIAL_CHARACTERS = r'[!@#$%^&*(),.?":{}|<>_\-]'


class PasswordPolicy:
    """Password strength requirements"""

    MIN_LENGTH = 8
    # bcrypt only looks at the first 72 bytes
    MAX_BYTES = 72

    @classmethod
    def check(cls, password: str) -> Tuple[bool, str]:
        """
        Check a candidate password

        Returns:
            (is_valid, error_message)
        """
        if not password:
            return False, "Password is required"

        if len(password) < cls.MIN_LENGTH:
            return False, f"Password must be at least {cls.MIN_LENGTH} characters long"

        if len(password.encode('utf-8')) > cls.MAX_BYTES:
            return False, f"Password must not exceed {cls.MAX_BYTES} bytes"

        if not re.search(r'[A-Z]', password):
            return False, "Password must contain at least one uppercase letter"

        if not re.search(r'[a-z]', password):
            return False, "Password must contain at least one lowercase letter"

        if not re.search(r'\d', password):
            return False, "Password must contain at least one number"

        if not re.search(SPECIAL_CHARACTERS, password):
            return False, "Password must contain at least one special character"

        return True, ""


def validate_password(password: str) -> None:
    """
    Validate password and raise if it does not meet the policy

    Raises:
        ValidationFailed: If password doesn't meet requirements
    """
    is_valid, error_message = PasswordPolicy.check(password)
    if not is_valid:
        raise ValidationFailed(error_message)
