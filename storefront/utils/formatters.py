from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional
import pytz
from ..config import Config

def format_price(amount: Decimal) -> str:
    """Format a rupee amount, e.g. ₹1,299.00"""
    return f"₹{Decimal(amount):,.2f}"

def format_datetime(dt: Optional[datetime]) -> Optional[str]:
    """Render a timestamp in the store's local timezone"""
    if dt is None:
        return None
    local_tz = pytz.timezone(Config.TIMEZONE)
    if dt.tzinfo is None:
        dt = pytz.utc.localize(dt)
    local_time = dt.astimezone(local_tz)
    return local_time.strftime("%Y-%m-%d %H:%M:%S")

def to_minor_units(amount: Decimal) -> int:
    """Major currency units to the smallest unit (rupees to paise), half up"""
    return int((Decimal(amount) * 100).quantize(Decimal(1), rounding=ROUND_HALF_UP))
