from .gateway import BasePaymentGateway, PaymentGatewayError, get_gateway
from .stub import StubGateway
from .http_gateway import HttpPaymentGateway

__all__ = [
    "BasePaymentGateway",
    "PaymentGatewayError",
    "get_gateway",
    "StubGateway",
    "HttpPaymentGateway",
]
