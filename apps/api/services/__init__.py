"""
Services package for the Hospital Booking API
Contains the business logic behind the routers
"""

from .payment_gateway import PaymentGateway, RazorpayGateway, SandboxGateway, get_payment_gateway

__all__ = [
    'PaymentGateway',
    'RazorpayGateway',
    'SandboxGateway',
    'get_payment_gateway',
]
