from aiohttp import web
from .base_handler import BaseHandler
from ..models.payment import PaymentOrderRequest, PlaceOrderRequest

class PaymentHandler(BaseHandler):
    """Gateway order creation and payment verification"""

    async def create_order(self, request: web.Request) -> web.Response:
        """POST /api/razorpay/create-order"""
        body = await self.read_json(request)
        payment_request = self.parse(PaymentOrderRequest, body)

        gateway_order = await self.storefront.payment_service.create_payment_order(payment_request)
        return self.json_response({
            "id": gateway_order.id,
            "amount": gateway_order.amount,
            "currency": gateway_order.currency,
            "key": gateway_order.key,
        })

    async def verify_payment(self, request: web.Request) -> web.Response:
        """POST /api/razorpay/verify-payment"""
        body = await self.read_json(request)
        place_request = self.parse(
            PlaceOrderRequest, body, "Missing required payment verification data"
        )

        order = await self.storefront.order_service.place_order(
            self.user_id(request), place_request
        )
        return self.json_response({
            "success": True,
            "order": order,
            "message": "Payment verified and order created successfully",
        })
