from .database import Database, DATABASE_ERRORS
from .stock_ledger import StockLedger
from .order_store import OrderStore
from .admin_log_store import AdminLogStore
from .user_store import UserStore

__all__ = [
    'Database',
    'DATABASE_ERRORS',
    'StockLedger',
    'OrderStore',
    'AdminLogStore',
    'UserStore'
]
