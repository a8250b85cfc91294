import os
import logging
from pathlib import Path
from dotenv import load_dotenv
from typing import List

# Load environment variables
load_dotenv()

# Base directory of the project
BASE_DIR = Path(__file__).resolve().parent.parent


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class Config:
    """Configuration settings for the storefront service"""

    # Database settings
    DATABASE_URL: str = os.getenv("DATABASE_URL", "")

    # Payment gateway settings
    RAZORPAY_KEY_ID: str = os.getenv("RAZORPAY_KEY_ID", "")
    RAZORPAY_KEY_SECRET: str = os.getenv("RAZORPAY_KEY_SECRET", "")
    RAZORPAY_PUBLIC_KEY: str = os.getenv("RAZORPAY_PUBLIC_KEY", "") or RAZORPAY_KEY_ID
    RAZORPAY_API_URL: str = os.getenv("RAZORPAY_API_URL", "https://api.razorpay.com/v1")
    GATEWAY_TIMEOUT: float = float(os.getenv("GATEWAY_TIMEOUT", "10"))
    DEFAULT_CURRENCY: str = "INR"

    # Admin settings
    ADMIN_IDS: List[str] = [
        id_.strip() for id_ in os.getenv("ADMIN_IDS", "").split(",")
        if id_.strip()
    ]
    ADMIN_RATE_LIMIT_WINDOW: int = int(os.getenv("ADMIN_RATE_LIMIT_WINDOW", "60"))
    ADMIN_RATE_LIMIT_MAX: int = int(os.getenv("ADMIN_RATE_LIMIT_MAX", "60"))

    # Order lifecycle
    RESTOCK_ON_CANCEL: bool = _env_flag("RESTOCK_ON_CANCEL")

    # Server settings
    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", "8080"))

    # Other settings
    APP_ENV: str = os.getenv("APP_ENV", "development")
    TIMEZONE: str = os.getenv("TZ", "Asia/Kolkata")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Paths
    LOG_DIR = BASE_DIR / "logs"

    @classmethod
    def is_production(cls) -> bool:
        return cls.APP_ENV == "production"

    @classmethod
    def gateway_configured(cls) -> bool:
        return bool(cls.RAZORPAY_KEY_ID and cls.RAZORPAY_KEY_SECRET)


def setup_logging():
    """Configure logging settings"""
    Config.LOG_DIR.mkdir(exist_ok=True)
    log_format = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    log_file = Config.LOG_DIR / "storefront.log"

    logging.basicConfig(
        level=getattr(logging, Config.LOG_LEVEL.upper(), logging.INFO),
        format=log_format,
        handlers=[
            logging.FileHandler(log_file),
            logging.StreamHandler()
        ]
    )
