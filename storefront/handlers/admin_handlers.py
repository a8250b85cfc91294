from aiohttp import web
from .base_handler import BaseHandler
from ..errors import ValidationError
from ..models.order import OrderStatus, UpdateOrderStatusRequest
from ..models.stock import SetStockRequest

MAX_LOG_PAGE = 200

class AdminHandler(BaseHandler):
    """Admin stock and order status endpoints.

    Access control and rate limiting happen in admin_middleware.
    """

    async def update_stock(self, request: web.Request) -> web.Response:
        """POST /api/admin/update-stock"""
        body = await self.read_json(request)
        stock_request = self.parse(SetStockRequest, body)

        product = await self.storefront.stock_service.set_stock(
            stock_request.product_id, stock_request.quantity
        )

        self.storefront.admin_log_service.log_action_nowait(self.admin_action(
            request, "UPDATE_STOCK",
            resource_type="product",
            resource_id=str(stock_request.product_id),
            details={"quantity": stock_request.quantity}
        ))

        return self.json_response({
            "success": True,
            "product": product,
            "message": "Stock updated successfully",
        })

    async def update_order_status(self, request: web.Request) -> web.Response:
        """POST /api/admin/update-order-status"""
        body = await self.read_json(request)
        status_request = self.parse(UpdateOrderStatusRequest, body)

        order = await self.storefront.order_service.update_order_status(
            status_request.order_id, status_request.status
        )

        action = ("CANCEL_ORDER" if status_request.status == OrderStatus.CANCELLED
                  else "UPDATE_ORDER_STATUS")
        self.storefront.admin_log_service.log_action_nowait(self.admin_action(
            request, action,
            resource_type="order",
            resource_id=str(order.id),
            details={"status": status_request.status.value}
        ))

        return self.json_response({
            "success": True,
            "order": order,
            "message": "Order status updated successfully",
        })

    async def list_logs(self, request: web.Request) -> web.Response:
        """GET /api/admin/logs?limit=N"""
        try:
            limit = int(request.query.get('limit', 50))
        except ValueError:
            raise ValidationError("limit must be an integer")
        if not 1 <= limit <= MAX_LOG_PAGE:
            raise ValidationError(f"limit must be between 1 and {MAX_LOG_PAGE}")

        logs = await self.storefront.admin_log_service.list_logs(limit)
        return self.json_response({"logs": logs})
