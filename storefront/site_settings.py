# storefront/site_settings.py
"""Keyed single-row settings, updated in place."""
import logging
from typing import Optional

from sqlalchemy.orm import Session

from .db import store_guard
from .models import SiteSetting

logger = logging.getLogger(__name__)

SHIPPING_THRESHOLD = "shipping_threshold"
APPBAR_TEXT = "appbar_text"


def get_setting(db: Session, key: str, default: Optional[str] = None) -> Optional[str]:
    with store_guard(f"read setting {key}"):
        row = db.get(SiteSetting, key)
    return row.value if row is not None else default


def set_setting(db: Session, key: str, value: str) -> str:
    with store_guard(f"update setting {key}"):
        db.merge(SiteSetting(key=key, value=value))  # upsert
        db.commit()
    logger.info(f"✅ Setting '{key}' updated")
    return value


def get_appbar_text(db: Session) -> str:
    return get_setting(db, APPBAR_TEXT, "") or ""


def set_appbar_text(db: Session, text: str) -> str:
    return set_setting(db, APPBAR_TEXT, text.strip())
