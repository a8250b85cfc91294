import hashlib
import hmac
from typing import Optional
from uuid import UUID
from aiohttp import web
from ..config import Config

def generate_payment_signature(order_id: str, payment_id: str,
                               secret: Optional[str] = None) -> str:
    """HMAC-SHA256 the gateway signs "<order_id>|<payment_id>" with"""
    key = secret if secret is not None else Config.RAZORPAY_KEY_SECRET
    message = f"{order_id}|{payment_id}"

    return hmac.new(
        key.encode(),
        message.encode(),
        hashlib.sha256
    ).hexdigest()

def verify_payment_signature(order_id: str, payment_id: str, signature: str,
                             secret: Optional[str] = None) -> bool:
    """Check a checkout signature returned by the gateway"""
    expected_signature = generate_payment_signature(order_id, payment_id, secret)
    return hmac.compare_digest(signature.encode(), expected_signature.encode())

def parse_uuid(value) -> Optional[UUID]:
    """Return value as a UUID, or None if it is not one"""
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except (TypeError, ValueError):
        return None

def get_client_ip(request: web.Request) -> Optional[str]:
    """Client address, honouring X-Forwarded-For then X-Real-IP"""
    forwarded = request.headers.get('X-Forwarded-For')
    if forwarded:
        return forwarded.split(',')[0].strip()

    return request.headers.get('X-Real-IP') or request.remote
