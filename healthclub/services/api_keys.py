# healthclub/services/api_keys.py
"""
API keys for the mobile app.

Keys look like `<prefix><random>` and are stored only as bcrypt hashes,
so verification has to try each active key.
"""
from __future__ import annotations

import logging
import secrets
from typing import Optional, Tuple

import bcrypt
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from healthclub.config.settings import settings
from healthclub.models.api_key import ApiKey
from healthclub.services.dates import utc_now

logger = logging.getLogger(__name__)


def hash_key(plain: str) -> str:
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def generate_api_key(db: Session, name: str) -> Tuple[ApiKey, str]:
    """Create a key; the plain value is returned once and never stored."""
    plain = settings.api_key_prefix + secrets.token_hex(24)
    row = ApiKey(name=name, key=hash_key(plain), key_prefix=plain[: len(settings.api_key_prefix) + 4])
    db.add(row)
    db.flush()
    return row, plain


def verify_api_key(db: Session, plain: Optional[str]) -> Optional[ApiKey]:
    if not plain or not plain.startswith(settings.api_key_prefix):
        return None

    active = db.execute(select(ApiKey).where(ApiKey.is_active.is_(True))).scalars().all()
    if not active:
        logger.warning("[api_keys] no active API keys configured")
        return None

    for row in active:
        try:
            matched = bcrypt.checkpw(plain.encode("utf-8"), row.key.encode("utf-8"))
        except ValueError as e:
            # malformed stored hash; try the next key
            logger.warning("[api_keys] unreadable hash for key=%s: %s", row.id, e)
            continue
        if matched:
            _touch(db, row)
            return row
    return None


def _touch(db: Session, row: ApiKey) -> None:
    # last_used is informational; failing to store it must not reject the request
    try:
        row.last_used = utc_now()
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.warning("[api_keys] could not update last_used key=%s: %s", row.id, e)
