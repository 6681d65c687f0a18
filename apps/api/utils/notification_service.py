"""SMS notification service using Twilio"""
import logging
from typing import Optional, Tuple
from twilio.rest import Client
from twilio.base.exceptions import TwilioRestException
from config import get_settings

logger = logging.getLogger(__name__)


class NotificationService:
    def __init__(self, account_sid: str = "", auth_token: str = "", sms_from: str = ""):
        self.account_sid = account_sid
        self.auth_token = auth_token
        self.sms_from = sms_from  # e.g., +1234567890

        if self.account_sid and self.auth_token:
            self.client = Client(self.account_sid, self.auth_token)
        else:
            self.client = None
            logger.warning("Twilio credentials not configured. Notifications will be simulated.")

    def _is_configured(self) -> bool:
        """Check if Twilio is properly configured"""
        return self.client is not None and bool(self.sms_from)

    def send_sms(self, to_phone: Optional[str], message: str) -> Tuple[bool, Optional[str]]:
        """
        Send SMS via Twilio

        Args:
            to_phone: Phone number in E.164 format (e.g., +919876543210)
            message: Message content

        Returns:
            (success: bool, message_sid or error: str)
        """
        if not self._is_configured():
            # Development fallback: the message only goes to the log
            logger.info(f"[SIMULATED SMS] To: {to_phone}, Message: {message}")
            return True, "simulated_message_sid"

        if not to_phone:
            logger.warning("SMS not sent, recipient has no phone number on file")
            return False, "no phone number on file"

        try:
            message_obj = self.client.messages.create(
                from_=self.sms_from,
                body=message,
                to=to_phone
            )
            return True, message_obj.sid

        except TwilioRestException as e:
            error_msg = f"Twilio error: {str(e)}"
            logger.error(error_msg)
            return False, error_msg

    def send_reset_code(self, to_phone: Optional[str], name: str, code: str, ttl_minutes: int) -> Tuple[bool, Optional[str]]:
        """Deliver a password reset code"""
        return self.send_sms(to_phone, render_reset_code(name, code, ttl_minutes))


def render_reset_code(name: str, code: str, ttl_minutes: int) -> str:
    """Render password reset notification template"""
    return f"""Hello {name},

Your password reset code is {code}.

It expires in {ttl_minutes} minutes. If you did not request a reset, you can ignore this message.

Hospital Booking Team"""


def build_notification_service() -> NotificationService:
    settings = get_settings()
    return NotificationService(
        account_sid=settings.TWILIO_ACCOUNT_SID,
        auth_token=settings.TWILIO_AUTH_TOKEN,
        sms_from=settings.TWILIO_SMS_FROM,
    )


# Singleton instance
notification_service = build_notification_service()
