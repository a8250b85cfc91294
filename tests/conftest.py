import copy
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from storefront.app import StorefrontApp
from storefront.config import Config
from storefront.services.order_service import OrderService, no_restock
from storefront.services.payment_service import PaymentService
from storefront.services.stock_service import StockService
from storefront.services.admin_log_service import AdminLogService
from storefront.utils.security import generate_payment_signature

KEY_ID = "rzp_test_key"
KEY_SECRET = "test_secret"


def _now():
    return datetime.now(timezone.utc)


class FakeDatabase:
    """Transactions snapshot the registered stores and restore them on error"""

    def __init__(self, *stores):
        self.stores = list(stores)
        self.transactions = 0
        self.rollbacks = 0

    async def connect(self):
        pass

    async def close(self):
        pass

    @asynccontextmanager
    async def transaction(self):
        self.transactions += 1
        snapshots = [copy.deepcopy(store.snapshot()) for store in self.stores]
        try:
            yield object()
        except BaseException:
            for store, snapshot in zip(self.stores, snapshots):
                store.restore(snapshot)
            self.rollbacks += 1
            raise


class InMemoryStockLedger:
    def __init__(self):
        self.products = {}
        self.failing = set()

    def add_product(self, name="Kurta", stock=10, price=Decimal("499.00")):
        product_id = uuid.uuid4()
        self.products[product_id] = {
            'id': product_id,
            'name': name,
            'price': price,
            'stock_quantity': stock,
            'is_active': True,
            'created_at': _now(),
            'updated_at': None,
        }
        return product_id

    def stock(self, product_id):
        return self.products[product_id]['stock_quantity']

    def snapshot(self):
        return self.products

    def restore(self, snapshot):
        self.products = snapshot

    async def decrement(self, product_id, quantity, conn=None):
        if product_id in self.failing:
            raise OSError("connection reset by peer")
        product = self.products.get(product_id)
        if product is None:
            return None
        previous = product['stock_quantity']
        product['stock_quantity'] = max(0, previous - quantity)
        product['updated_at'] = _now()
        return {
            'name': product['name'],
            'previous_stock': previous,
            'new_stock': product['stock_quantity'],
        }

    async def increment(self, product_id, quantity, conn=None):
        product = self.products.get(product_id)
        if product is None:
            return None
        product['stock_quantity'] += quantity
        return product['stock_quantity']

    async def set_stock(self, product_id, quantity, conn=None):
        product = self.products.get(product_id)
        if product is None:
            return None
        product['stock_quantity'] = quantity
        return dict(product)


class InMemoryOrderStore:
    def __init__(self):
        self.orders = {}
        self.items = {}
        self.writes = 0
        self.fail_on_create = False

    def add_order(self, status="pending", lines=(), user_id="user-1",
                  shipping_cost=Decimal("50.00")):
        """lines: (product_id, quantity, unit price) tuples"""
        order_id = uuid.uuid4()
        subtotal = sum((price * qty for _, qty, price in lines), Decimal(0))
        self.orders[order_id] = {
            'id': order_id,
            'order_number': f"ORD-{order_id.hex[:8]}",
            'user_id': user_id,
            'status': status,
            'payment_method': 'razorpay',
            'payment_status': 'completed',
            'subtotal': subtotal,
            'tax': Decimal(0),
            'shipping_cost': shipping_cost,
            'total_amount': subtotal + shipping_cost,
            'cancelled_at': None,
            'created_at': _now(),
            'updated_at': None,
        }
        for product_id, quantity, price in lines:
            self._insert_item(order_id, {
                'product_id': product_id,
                'product_name': "Item",
                'product_price': price,
                'total_price': price * quantity,
                'quantity': quantity,
            })
        return order_id

    def item_ids(self, order_id):
        return [i['id'] for i in self.items.values() if i['order_id'] == order_id]

    def _insert_item(self, order_id, item):
        item_id = uuid.uuid4()
        self.items[item_id] = {
            'id': item_id,
            'order_id': order_id,
            'product_id': item['product_id'],
            'product_name': item['product_name'],
            'product_price': item['product_price'],
            'total_price': item['total_price'],
            'quantity': item['quantity'],
            'cancelled_quantity': 0,
            'size': item.get('size'),
            'cancelled_at': None,
            'created_at': _now(),
        }

    def snapshot(self):
        return (self.orders, self.items)

    def restore(self, snapshot):
        self.orders, self.items = snapshot

    async def get(self, order_id, conn=None):
        order = self.orders.get(order_id)
        if order is None:
            return None
        return {**order, 'items': await self.list_items(order_id)}

    async def get_status(self, order_id):
        order = self.orders.get(order_id)
        return order['status'] if order else None

    async def list_items(self, order_id, conn=None):
        return [dict(i) for i in self.items.values() if i['order_id'] == order_id]

    async def create(self, order, items, conn=None):
        if self.fail_on_create:
            raise OSError("insert failed")
        self.writes += 1
        order_id = uuid.uuid4()
        self.orders[order_id] = {
            'id': order_id, 'cancelled_at': None,
            'created_at': _now(), 'updated_at': _now(), **order
        }
        for item in items:
            self._insert_item(order_id, item)
        return await self.get(order_id)

    async def cancel_if_open(self, order_id, conn=None):
        order = self.orders.get(order_id)
        if order is None or order['status'] in ('cancelled', 'delivered'):
            return None
        self.writes += 1
        order.update(status='cancelled', cancelled_at=_now(), updated_at=_now())
        return await self.get(order_id)

    async def update_status(self, order_id, status):
        order = self.orders.get(order_id)
        if order is None:
            return None
        self.writes += 1
        order.update(status=status, updated_at=_now())
        return dict(order)

    async def get_item(self, order_item_id):
        item = self.items.get(order_item_id)
        return dict(item) if item else None

    async def cancel_item_quantity(self, order_item_id, quantity, conn=None):
        item = self.items.get(order_item_id)
        if item is None or item['quantity'] - item['cancelled_quantity'] < quantity:
            return None
        self.writes += 1
        item['cancelled_quantity'] += quantity
        item['cancelled_at'] = _now()
        return dict(item)

    async def lock_order(self, order_id, conn):
        order = self.orders.get(order_id)
        return dict(order) if order else None

    async def update_totals(self, order_id, fields, conn=None):
        order = self.orders[order_id]
        if order['status'] in ('cancelled', 'delivered'):
            return None
        self.writes += 1
        order.update(fields, updated_at=_now())
        return dict(order)

    async def get_user_orders(self, user_id, limit=10):
        orders = [dict(o) for o in self.orders.values() if o['user_id'] == user_id]
        return sorted(orders, key=lambda o: o['created_at'], reverse=True)[:limit]


class InMemoryAdminLogStore:
    def __init__(self):
        self.entries = []
        self.fail = False

    async def insert(self, action):
        if self.fail:
            raise RuntimeError("admin_logs unavailable")
        self.entries.append({'id': len(self.entries) + 1, 'created_at': _now(), **action})

    async def list(self, limit=50):
        return list(reversed(self.entries))[:limit]


class InMemoryUserStore:
    def __init__(self, admins=()):
        self.admins = set(admins)

    async def is_admin(self, user_id):
        return user_id in self.admins


class FakeGatewayClient:
    def __init__(self):
        self.calls = []
        self.error = None

    async def create_order(self, amount, currency, receipt, notes=None):
        self.calls.append({'amount': amount, 'currency': currency,
                           'receipt': receipt, 'notes': notes})
        if self.error is not None:
            raise self.error
        return {
            'id': f"order_{len(self.calls):06d}",
            'entity': 'order',
            'amount': amount,
            'currency': currency,
            'receipt': receipt,
            'status': 'created',
        }


ADMIN_ID = "a1b2c3d4e5f6g7h8i9j0k1"


@pytest.fixture(autouse=True)
def gateway_config(monkeypatch):
    monkeypatch.setattr(Config, "RAZORPAY_KEY_ID", KEY_ID)
    monkeypatch.setattr(Config, "RAZORPAY_KEY_SECRET", KEY_SECRET)
    monkeypatch.setattr(Config, "RAZORPAY_PUBLIC_KEY", KEY_ID)
    monkeypatch.setattr(Config, "APP_ENV", "test")
    monkeypatch.setattr(Config, "ADMIN_IDS", [])
    monkeypatch.setattr(Config, "RESTOCK_ON_CANCEL", False)


@pytest.fixture
def ledger():
    return InMemoryStockLedger()


@pytest.fixture
def order_store():
    return InMemoryOrderStore()


@pytest.fixture
def admin_log_store():
    return InMemoryAdminLogStore()


@pytest.fixture
def db(ledger, order_store):
    return FakeDatabase(ledger, order_store)


@pytest.fixture
def gateway():
    return FakeGatewayClient()


@pytest.fixture
def stock_service(ledger):
    return StockService(ledger)


@pytest.fixture
def payment_service(gateway):
    return PaymentService(client=gateway)


@pytest.fixture
def order_service(db, order_store, stock_service, payment_service):
    return OrderService(db, order_store, stock_service, payment_service,
                        restock_policy=no_restock)


@pytest.fixture
def admin_log_service(admin_log_store):
    return AdminLogService(admin_log_store)


@pytest.fixture
def storefront(db, ledger, order_store, admin_log_store, payment_service):
    return StorefrontApp(
        db=db,
        stock_ledger=ledger,
        order_store=order_store,
        admin_log_store=admin_log_store,
        user_store=InMemoryUserStore(admins=[ADMIN_ID]),
        payment_service=payment_service,
        restock_policy=no_restock
    )


@pytest.fixture
async def client(aiohttp_client, storefront):
    return await aiohttp_client(storefront.application)


def signed_payment(order_id="order_000001", payment_id="pay_000001"):
    return {
        'razorpay_order_id': order_id,
        'razorpay_payment_id': payment_id,
        'razorpay_signature': generate_payment_signature(order_id, payment_id, KEY_SECRET),
    }


def checkout_body(lines, order_number="ORD-1001", **payment):
    """lines: (product_id, quantity, unit price) tuples"""
    items = [{
        'product_id': str(product_id),
        'product_name': "Kurta",
        'product_price': str(price),
        'total_price': str(price * qty),
        'quantity': qty,
    } for product_id, qty, price in lines]
    total = sum((price * qty for _, qty, price in lines), Decimal(0)) + Decimal("50.00")
    return {
        **signed_payment(**payment),
        'orderNumber': order_number,
        'orderItems': items,
        'orderData': {
            'total': str(total),
            'shippingCost': "50.00",
            'formData': {
                'fullName': "Asha Rao",
                'address': "12 MG Road",
                'city': "Bengaluru",
                'state': "Karnataka",
                'zipCode': "560001",
                'phone': "+91 98765 43210",
            },
        },
    }
