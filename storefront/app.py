import asyncio
import contextlib
import logging
from typing import Optional
from aiohttp import web
from .config import Config
from .database import Database, StockLedger, OrderStore, AdminLogStore, UserStore
from .handlers import (
    PaymentHandler,
    OrderHandler,
    AdminHandler,
    error_middleware,
    admin_middleware
)
from .services.admin_log_service import AdminLogService
from .services.order_service import OrderService
from .services.payment_service import PaymentService
from .services.stock_service import StockService
from .utils.rate_limit import FixedWindowRateLimiter

class StorefrontApp:
    def __init__(self, db: Optional[Database] = None,
                 stock_ledger=None, order_store=None, admin_log_store=None, user_store=None,
                 payment_service: Optional[PaymentService] = None,
                 restock_policy=None):
        """Wire stores, services and routes"""
        self.logger = logging.getLogger(__name__)
        self.db = db or Database()

        self.stock_ledger = stock_ledger or StockLedger(self.db)
        self.order_store = order_store or OrderStore(self.db)
        self.admin_log_store = admin_log_store or AdminLogStore(self.db)
        self.user_store = user_store or UserStore(self.db)

        self.stock_service = StockService(self.stock_ledger)
        self.payment_service = payment_service or PaymentService()
        self.order_service = OrderService(
            self.db, self.order_store, self.stock_service,
            payment_service=self.payment_service,
            restock_policy=restock_policy
        )
        self.admin_log_service = AdminLogService(self.admin_log_store)
        self.rate_limiter = FixedWindowRateLimiter(
            window_seconds=Config.ADMIN_RATE_LIMIT_WINDOW,
            max_requests=Config.ADMIN_RATE_LIMIT_MAX
        )

        self.payment_handler = PaymentHandler(self)
        self.order_handler = OrderHandler(self)
        self.admin_handler = AdminHandler(self)

        self.application = web.Application(
            middlewares=[error_middleware, admin_middleware(self)]
        )
        self.setup_routes()
        self.application.on_startup.append(self._on_startup)
        self.application.on_cleanup.append(self._on_cleanup)
        self._cleanup_task: Optional[asyncio.Task] = None

    def setup_routes(self):
        """Register HTTP routes"""
        router = self.application.router

        router.add_get("/health", self.health)

        # checkout
        router.add_post("/api/razorpay/create-order", self.payment_handler.create_order)
        router.add_post("/api/razorpay/verify-payment", self.payment_handler.verify_payment)

        # orders
        router.add_post("/api/orders/update-stock", self.order_handler.update_stock)
        router.add_post("/api/orders/cancel", self.order_handler.cancel_order)
        router.add_post("/api/orders/cancel-item", self.order_handler.cancel_item)
        router.add_get("/api/orders/{order_id}", self.order_handler.track_order)

        # admin
        router.add_post("/api/admin/update-stock", self.admin_handler.update_stock)
        router.add_post("/api/admin/update-order-status", self.admin_handler.update_order_status)
        router.add_get("/api/admin/logs", self.admin_handler.list_logs)

    async def health(self, request: web.Request) -> web.Response:
        return web.json_response({"status": "ok"})

    async def _on_startup(self, app: web.Application):
        await self.db.connect()
        self._cleanup_task = asyncio.create_task(self._expire_rate_limits())

    async def _on_cleanup(self, app: web.Application):
        if self._cleanup_task:
            self._cleanup_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._cleanup_task
        await self.admin_log_service.drain()
        await self.db.close()

    async def _expire_rate_limits(self):
        while True:
            await asyncio.sleep(self.rate_limiter.window_seconds)
            removed = self.rate_limiter.cleanup()
            if removed:
                self.logger.debug(f"Dropped {removed} expired rate limit windows")

    async def start(self):
        """Serve until cancelled"""
        runner = web.AppRunner(self.application)
        await runner.setup()
        site = web.TCPSite(runner, Config.HOST, Config.PORT)
        await site.start()
        self.logger.info(f"Listening on {Config.HOST}:{Config.PORT}")

        try:
            await asyncio.Event().wait()
        finally:
            await runner.cleanup()
