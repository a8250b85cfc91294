"""HTTP handlers"""
from .base_handler import BaseHandler
from .payment_handler import PaymentHandler
from .order_handlers import OrderHandler
from .admin_handlers import AdminHandler
from .middlewares import error_middleware, admin_middleware

__all__ = [
    'BaseHandler',
    'PaymentHandler',
    'OrderHandler',
    'AdminHandler',
    'error_middleware',
    'admin_middleware'
]
