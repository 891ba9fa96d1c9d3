# storefront/config.py
import os

from dotenv import load_dotenv

# Load environment variables (optional for local dev)
load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./storefront.db")
STORE_TIMEOUT_SECONDS = int(os.getenv("STORE_TIMEOUT_SECONDS", "5"))

# Free-shipping cutoff used until an admin stores one in site settings
DEFAULT_SHIPPING_THRESHOLD = float(os.getenv("DEFAULT_SHIPPING_THRESHOLD", "100"))

DEFAULT_PAGE_SIZE = int(os.getenv("DEFAULT_PAGE_SIZE", "6"))
MAX_PAGE_SIZE = int(os.getenv("MAX_PAGE_SIZE", "60"))

ALLOWED_ORIGINS = [o.strip() for o in os.getenv("ALLOWED_ORIGINS", "*").split(",") if o.strip()]
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
PORT = int(os.getenv("PORT", "10000"))
