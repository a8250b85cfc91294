from datetime import datetime, timezone
import logging
from decimal import Decimal
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple
from uuid import UUID
import asyncpg
from ..config import Config
from ..database import DATABASE_ERRORS
from ..errors import (
    AuthenticationError, ConflictError, NotFoundError, PersistenceError, ValidationError
)
from ..models.order import Order, OrderItem, OrderStatus, PaymentMethod
from ..models.payment import PlaceOrderRequest
from ..models.stock import StockUpdateItem
from ..services.payment_service import PaymentService
from ..services.stock_service import StockService, PRODUCT_NOT_FOUND
from ..utils.formatters import format_datetime, format_price
from ..utils.security import parse_uuid

RestockLines = List[Tuple[UUID, int]]
RestockPolicy = Callable[[StockService, RestockLines, Optional[asyncpg.Connection]], Awaitable[None]]

async def no_restock(stock_service: StockService, lines: RestockLines,
                     conn: Optional[asyncpg.Connection] = None) -> None:
    """Cancelled quantities stay out of stock"""
    return None

async def restock_items(stock_service: StockService, lines: RestockLines,
                        conn: Optional[asyncpg.Connection] = None) -> None:
    """Cancelled quantities go back into stock"""
    await stock_service.restock(lines, conn)

class OrderService:
    """Order lifecycle: placement after payment, cancellation, status updates"""

    def __init__(self, db, store, stock_service: StockService,
                 payment_service: Optional[PaymentService] = None,
                 restock_policy: Optional[RestockPolicy] = None):
        self.db = db
        self.store = store
        self.stock_service = stock_service
        self.payment_service = payment_service or PaymentService()
        if restock_policy is None:
            restock_policy = restock_items if Config.RESTOCK_ON_CANCEL else no_restock
        self.restock_policy = restock_policy
        self.logger = logging.getLogger(__name__)

    @staticmethod
    def _order_uuid(order_id: Any, message: str = "Order not found") -> UUID:
        uid = parse_uuid(order_id)
        if uid is None:
            raise NotFoundError(message)
        return uid

    async def get_order(self, order_id: Any) -> Order:
        """Fetch an order with its items"""
        uid = self._order_uuid(order_id)
        try:
            row = await self.store.get(uid)
        except DATABASE_ERRORS as e:
            raise PersistenceError("Failed to load order", details=str(e))

        if row is None:
            raise NotFoundError("Order not found")
        return Order.model_validate(row)

    async def cancel_order(self, order_id: Any) -> Order:
        """Cancel an order unless it is already cancelled or delivered"""
        uid = self._order_uuid(order_id)

        try:
            async with self.db.transaction() as conn:
                row = await self.store.cancel_if_open(uid, conn)
                if row is not None:
                    order = Order.model_validate(row)
                    await self.restock_policy(
                        self.stock_service,
                        [(item.product_id, item.active_quantity) for item in order.items],
                        conn
                    )
        except DATABASE_ERRORS as e:
            self.logger.error(f"Error cancelling order {uid}: {e}")
            raise PersistenceError("Failed to cancel order", details=str(e))

        if row is None:
            await self._raise_not_cancellable(uid)

        self.logger.info(f"Order {uid} cancelled")
        return order

    async def _raise_not_cancellable(self, order_id: UUID):
        status = await self.store.get_status(order_id)
        if status is None:
            raise NotFoundError("Order not found")
        if status == OrderStatus.CANCELLED.value:
            raise ConflictError("Order is already cancelled")
        if status == OrderStatus.DELIVERED.value:
            raise ConflictError("Cannot cancel a delivered order")
        # status moved on between the guarded update and this read
        raise ConflictError(f"Order cannot be cancelled in status: {status}")

    async def update_order_status(self, order_id: Any, new_status: OrderStatus) -> Order:
        """Admin status change; cancellation goes through cancel_order"""
        if new_status == OrderStatus.CANCELLED:
            return await self.cancel_order(order_id)

        uid = self._order_uuid(order_id)
        try:
            row = await self.store.update_status(uid, new_status.value)
        except DATABASE_ERRORS as e:
            raise PersistenceError("Failed to update order status", details=str(e))

        if row is None:
            raise NotFoundError("Order not found")

        self.logger.info(f"Order {uid} status set to {new_status.value}")
        return Order.model_validate(row)

    async def place_order(self, user_id: Optional[str], request: PlaceOrderRequest) -> Order:
        """Record a paid order once the gateway signature checks out.

        Stock decrements, the order row and its items commit together; a
        failure in any of them leaves all three untouched.
        """
        if not user_id:
            raise AuthenticationError("Unauthorized")

        self.payment_service.verify_payment(request)

        form = request.order_data.form_data
        subtotal = request.order_data.subtotal
        if subtotal is None:
            subtotal = sum((item.total_price for item in request.order_items), Decimal(0))

        order_fields = {
            'order_number': request.order_number,
            'user_id': user_id,
            'status': OrderStatus.PAID.value,
            'payment_method': PaymentMethod.RAZORPAY.value,
            'payment_status': 'completed',
            'subtotal': subtotal,
            'tax': Decimal(0),
            'shipping_cost': request.order_data.shipping_cost,
            'total_amount': request.order_data.total,
            'notes': (f"Payment ID: {request.razorpay_payment_id}. "
                      f"Razorpay Order: {request.razorpay_order_id}"),
            'customer_name': form.full_name,
            'customer_phone': form.phone,
            'customer_email': form.email,
            'shipping_address': form.address,
            'shipping_city': form.city,
            'shipping_state': form.state,
            'shipping_zip_code': form.zip_code,
        }
        items = [item.model_dump() for item in request.order_items]
        stock_items = [
            StockUpdateItem(product_id=item.product_id, quantity=item.quantity)
            for item in request.order_items
        ]

        try:
            async with self.db.transaction() as conn:
                report = await self.stock_service.apply_stock_for_order(stock_items, conn)
                failed = report.failed_updates
                if failed:
                    details = [u.model_dump(mode="json") for u in failed]
                    if all(u.error == PRODUCT_NOT_FOUND for u in failed):
                        raise ValidationError("Order contains unknown products", details=details)
                    raise PersistenceError("Failed to update stock for order", details=details)

                row = await self.store.create(order_fields, items, conn)
        except asyncpg.UniqueViolationError:
            raise ConflictError(f"Order {request.order_number} already exists")
        except DATABASE_ERRORS as e:
            self.logger.error(f"Error creating order {request.order_number}: {e}")
            raise PersistenceError("Failed to create order after payment", details=str(e))

        self.logger.info(
            f"Order {request.order_number} placed for user {user_id} "
            f"(gateway order {request.razorpay_order_id})"
        )
        return Order.model_validate(row)

    @staticmethod
    def _check_items_cancellable(status: OrderStatus):
        if status == OrderStatus.CANCELLED:
            raise ConflictError("Cannot cancel items in a cancelled order")
        if status == OrderStatus.DELIVERED:
            raise ConflictError("Cannot cancel items in a delivered order")

    async def cancel_order_item(self, order_item_id: Any, cancelled_quantity: int) -> Dict[str, Any]:
        """Cancel part of a line item and recompute the order totals"""
        item_uid = self._order_uuid(order_item_id, "Order item not found")

        item_row = await self.store.get_item(item_uid)
        if item_row is None:
            raise NotFoundError("Order item not found")
        item = OrderItem.model_validate(item_row)

        order_row = await self.store.get(item.order_id)
        if order_row is None:
            raise NotFoundError("Order not found")
        order = Order.model_validate(order_row)
        self._check_items_cancellable(order.status)

        remaining = item.active_quantity
        if cancelled_quantity > remaining:
            raise ValidationError(
                f"Cannot cancel {cancelled_quantity} items. Only {remaining} items remaining."
            )

        try:
            async with self.db.transaction() as conn:
                # status may have moved since the read above
                locked_row = await self.store.lock_order(order.id, conn)
                if locked_row is None:
                    raise NotFoundError("Order not found")
                locked = Order.model_validate(locked_row)
                self._check_items_cancellable(locked.status)

                updated_row = await self.store.cancel_item_quantity(item_uid, cancelled_quantity, conn)
                if updated_row is None:
                    raise ConflictError("Order item changed, please retry")

                items = [OrderItem.model_validate(i) for i in await self.store.list_items(order.id, conn)]
                subtotal = sum((i.active_total for i in items), Decimal(0))
                tax = Decimal(0)
                all_cancelled = all(i.active_quantity == 0 for i in items)

                fields: Dict[str, Any] = {
                    'subtotal': subtotal,
                    'tax': tax,
                    'total_amount': subtotal + locked.shipping_cost + tax,
                }
                if all_cancelled:
                    fields['status'] = OrderStatus.CANCELLED.value
                    fields['cancelled_at'] = datetime.now(timezone.utc)
                elif locked.status == OrderStatus.PAID:
                    fields['status'] = OrderStatus.PROCESSING.value

                updated_order = await self.store.update_totals(order.id, fields, conn)
                if updated_order is None:
                    raise ConflictError("Order changed, please retry")
                await self.restock_policy(
                    self.stock_service, [(item.product_id, cancelled_quantity)], conn
                )
        except DATABASE_ERRORS as e:
            self.logger.error(f"Error cancelling order item {item_uid}: {e}")
            raise PersistenceError("Failed to cancel item", details=str(e))

        self.logger.info(
            f"Cancelled {cancelled_quantity} of order item {item_uid} "
            f"(order {order.id}, all cancelled: {all_cancelled})"
        )
        return {
            'order_item': OrderItem.model_validate(updated_row),
            'order': Order.model_validate({**updated_order, 'items': items}),
            'all_items_cancelled': all_cancelled,
        }

    async def track_order(self, order_id: Any, user_id: Optional[str]) -> Dict[str, Any]:
        """Order view for its owner, with display-ready totals and times"""
        if not user_id:
            raise AuthenticationError("Unauthorized")

        order = await self.get_order(order_id)
        if order.user_id != user_id:
            # do not reveal other users' orders
            raise NotFoundError("Order not found")

        return {
            'order': order,
            'total_display': format_price(order.total_amount),
            'placed_at': format_datetime(order.created_at),
            'cancelled_at': format_datetime(order.cancelled_at),
            'items_count': sum(i.active_quantity for i in order.items),
            'can_cancel': order.is_cancellable,
        }

    async def get_user_orders(self, user_id: str, limit: int = 10) -> List[Order]:
        rows = await self.store.get_user_orders(user_id, limit)
        return [Order.model_validate(row) for row in rows]
