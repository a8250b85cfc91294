from decimal import Decimal
from typing import Optional, Dict, Any
import asyncio
import json
import logging
import uuid
import aiohttp
from ..config import Config
from ..errors import (
    AuthenticationError, UpstreamServiceError, ValidationError
)
from ..models.payment import PaymentOrderRequest, PaymentGatewayOrder, PaymentVerification
from ..utils.formatters import to_minor_units
from ..utils.security import verify_payment_signature

# smallest chargeable amount in minor units (₹1.00)
MIN_AMOUNT_MINOR = 100
# the gateway rejects longer receipts
RECEIPT_MAX_LENGTH = 40

def generate_receipt_id() -> str:
    """Collision resistant receipt id within the gateway's length limit"""
    return f"ord_{uuid.uuid4().hex}"[:RECEIPT_MAX_LENGTH]

class GatewayError(Exception):
    """Non-2xx answer from the payment gateway"""

    def __init__(self, status_code: int, payload: Optional[Dict[str, Any]] = None):
        self.status_code = status_code
        self.payload = payload or {}
        error = self.payload.get('error') or {}
        self.code = error.get('code')
        self.description = error.get('description') or self.payload.get('description')
        self.field = error.get('field')
        super().__init__(self.description or f"Gateway responded with {status_code}")

class RazorpayClient:
    """Minimal async client for the Razorpay orders API"""

    def __init__(self, key_id: str, key_secret: str,
                 base_url: Optional[str] = None, timeout: Optional[float] = None):
        self.key_id = key_id
        self.key_secret = key_secret
        self.base_url = (base_url or Config.RAZORPAY_API_URL).rstrip('/')
        self.timeout = timeout if timeout is not None else Config.GATEWAY_TIMEOUT

    async def create_order(self, amount: int, currency: str, receipt: str,
                           notes: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        """Create a gateway order; amount is in minor units"""
        async with aiohttp.ClientSession(
            auth=aiohttp.BasicAuth(self.key_id, self.key_secret),
            timeout=aiohttp.ClientTimeout(total=self.timeout)
        ) as session:
            async with session.post(
                f"{self.base_url}/orders",
                json={
                    "amount": amount,
                    "currency": currency,
                    "receipt": receipt,
                    "notes": notes or {}
                }
            ) as response:
                body = await response.text()
                try:
                    data = json.loads(body) if body else {}
                except ValueError:
                    data = {"description": body}

                if response.status >= 400:
                    raise GatewayError(response.status, data)

                return data

class PaymentService:
    """Creates gateway orders and verifies completed payments"""

    def __init__(self, client: Optional[RazorpayClient] = None):
        self.client = client
        self.logger = logging.getLogger(__name__)

    def _get_client(self) -> RazorpayClient:
        if self.client is None:
            if not Config.gateway_configured():
                raise UpstreamServiceError(
                    "Payment gateway not configured. Please contact support.",
                    details={
                        "message": "RAZORPAY_KEY_ID and RAZORPAY_KEY_SECRET must be set."
                    }
                )
            self.client = RazorpayClient(Config.RAZORPAY_KEY_ID, Config.RAZORPAY_KEY_SECRET)
        return self.client

    @staticmethod
    def validate_amount(amount: Optional[Decimal]) -> int:
        """Check an amount in major units and return it in minor units"""
        if amount is None:
            raise ValidationError("Amount is required")
        if amount <= 0:
            raise ValidationError("Invalid amount")

        amount_minor = to_minor_units(amount)
        if amount_minor < MIN_AMOUNT_MINOR:
            raise ValidationError("Minimum order amount is ₹1.00")
        return amount_minor

    async def create_payment_order(self, request: PaymentOrderRequest) -> PaymentGatewayOrder:
        """Mint a gateway order the client uses to open the hosted checkout"""
        client = self._get_client()

        if not request.user_id:
            raise AuthenticationError("Unauthorized. Please log in to continue.")

        amount_minor = self.validate_amount(request.amount)
        currency = (request.currency or Config.DEFAULT_CURRENCY).upper()
        receipt = generate_receipt_id()

        try:
            gateway_order = await client.create_order(
                amount=amount_minor,
                currency=currency,
                receipt=receipt,
                notes={"user_id": request.user_id}
            )
        except GatewayError as e:
            self.logger.error(f"Gateway rejected order {receipt}: {e.status_code} {e.description}")
            raise self._translate_gateway_error(e)
        except asyncio.TimeoutError:
            self.logger.error(f"Gateway timed out creating order {receipt}")
            raise UpstreamServiceError(
                "Payment gateway timed out. Please try again.",
                status=504,
                retryable=True
            )
        except aiohttp.ClientError as e:
            self.logger.error(f"Gateway unreachable creating order {receipt}: {e}")
            raise UpstreamServiceError(
                str(e) or "Failed to create payment order",
                retryable=True
            )

        public_key = Config.RAZORPAY_PUBLIC_KEY or Config.RAZORPAY_KEY_ID
        if not public_key:
            raise UpstreamServiceError("Payment gateway configuration error")

        self.logger.info(
            f"Created gateway order {gateway_order.get('id')} for user {request.user_id} "
            f"({amount_minor} {currency})"
        )
        return PaymentGatewayOrder(
            id=gateway_order['id'],
            amount=gateway_order.get('amount', amount_minor),
            currency=gateway_order.get('currency', currency),
            receipt=gateway_order.get('receipt', receipt),
            key=public_key
        )

    @staticmethod
    def _translate_gateway_error(error: GatewayError) -> UpstreamServiceError:
        details = {
            "statusCode": error.status_code,
            "field": error.field,
            "description": error.description,
        }

        if error.status_code in (401, 403):
            message = "Invalid Razorpay API keys. Please check your configuration."
        elif error.status_code == 400:
            message = (error.description or
                       "Invalid request to payment gateway. Please check your order details.")
        else:
            message = error.description or "Failed to create payment order"

        # rejected input keeps the gateway status; bad keys and outages become 500
        status = 500
        if 400 <= error.status_code < 500 and error.status_code not in (401, 403):
            status = error.status_code
        return UpstreamServiceError(
            message,
            status=status,
            details=details,
            retryable=error.status_code >= 500
        )

    def verify_payment(self, verification: PaymentVerification) -> None:
        """Raise unless the checkout signature matches the key secret"""
        if not Config.RAZORPAY_KEY_SECRET:
            raise UpstreamServiceError("Payment gateway not configured. Please contact support.")

        if not verify_payment_signature(
            verification.razorpay_order_id,
            verification.razorpay_payment_id,
            verification.razorpay_signature
        ):
            self.logger.warning(
                f"Invalid payment signature for gateway order {verification.razorpay_order_id}"
            )
            raise ValidationError("Invalid payment signature")
