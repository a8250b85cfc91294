from aiohttp import web
from .base_handler import BaseHandler
from ..models.order import CancelOrderRequest, CancelItemRequest
from ..models.stock import StockUpdateBatch

class OrderHandler(BaseHandler):
    """Stock application, cancellation and tracking of orders"""

    async def update_stock(self, request: web.Request) -> web.Response:
        """POST /api/orders/update-stock"""
        body = await self.read_json(request)
        batch = self.parse(StockUpdateBatch, body, "Invalid order items data")

        report = await self.storefront.stock_service.apply_stock_for_order(batch.root)

        if report.has_failures:
            return self.json_response({
                "error": "Some stock updates failed",
                "failedUpdates": report.failed_updates,
                "successfulUpdates": report.successful_updates,
            }, status=207)

        return self.json_response({
            "success": True,
            "message": "Stock updated successfully",
            "updates": report.updates,
        })

    async def cancel_order(self, request: web.Request) -> web.Response:
        """POST /api/orders/cancel"""
        body = await self.read_json(request)
        cancel_request = self.parse(CancelOrderRequest, body, "Missing required field")

        order = await self.storefront.order_service.cancel_order(cancel_request.order_id)
        return self.json_response({
            "success": True,
            "order": order,
            "message": "Order cancelled successfully",
        })

    async def cancel_item(self, request: web.Request) -> web.Response:
        """POST /api/orders/cancel-item"""
        body = await self.read_json(request)
        cancel_request = self.parse(CancelItemRequest, body)

        result = await self.storefront.order_service.cancel_order_item(
            cancel_request.order_item_id, cancel_request.cancelled_quantity
        )
        if result['all_items_cancelled']:
            message = "Item cancelled. All items in this order are now cancelled."
        else:
            message = "Item cancelled successfully. Order totals updated."

        return self.json_response({"success": True, **result, "message": message})

    async def track_order(self, request: web.Request) -> web.Response:
        """GET /api/orders/{order_id}"""
        tracking = await self.storefront.order_service.track_order(
            request.match_info['order_id'], self.user_id(request)
        )
        return self.json_response(tracking)
