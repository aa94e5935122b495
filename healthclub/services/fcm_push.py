# healthclub/services/fcm_push.py
from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

import firebase_admin
from firebase_admin import credentials, exceptions as firebase_exceptions, messaging
from sqlalchemy import select, update
from sqlalchemy.orm import Session

from healthclub.models.app_user import AppUser
from healthclub.models.push_notification_log import PushNotificationLog
from healthclub.services.dates import utc_now

logger = logging.getLogger(__name__)

FCM_NOT_READY = "FCM not initialized. Please configure FCM settings and service account credentials."
INVALID_TOKEN = "Invalid FCM token"


@dataclass
class PushResult:
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None
    error_code: Optional[str] = None


# (db, token, title, body, data=..., source=..., ...) -> PushResult
PushSender = Callable[..., PushResult]


def init_firebase(key_path: str) -> bool:
    """Connect the Admin SDK once. A missing key file only disables pushes."""
    if firebase_admin._apps:
        logger.info("[fcm] Firebase already initialized")
        return True

    if not os.path.exists(key_path):
        logger.warning("[fcm] key file '%s' not found, push notifications disabled", key_path)
        return False

    firebase_admin.initialize_app(credentials.Certificate(key_path))
    logger.info("[fcm] connected to Firebase (FCM)")
    return True


def _firebase_ready() -> bool:
    return bool(getattr(firebase_admin, "_apps", None))


def _data_to_str(data: Optional[Dict[str, Any]]) -> Dict[str, str]:
    # FCM data payload values must be strings
    if not data:
        return {}
    return {k: str(v) for k, v in data.items() if v is not None}


def _is_dead_token(exc: Exception) -> bool:
    if isinstance(exc, (messaging.UnregisteredError, messaging.SenderIdMismatchError)):
        return True
    msg = (str(exc) or "").lower()
    # INVALID_ARGUMENT is also raised for bad payloads; only token complaints count
    if isinstance(exc, firebase_exceptions.InvalidArgumentError):
        return "registration token" in msg
    name = exc.__class__.__name__.lower()
    code = str(getattr(exc, "code", "") or "").lower()
    return (
        "unregistered" in name
        or "unregistered" in msg
        or "not registered" in msg
        or "registration-token-not-registered" in msg
        or "invalid-registration-token" in code
        or "invalid registration" in msg
        or "not a valid fcm registration token" in msg
    )


def mask_token(token: Optional[str]) -> str:
    if not token:
        return ""
    return token[:20] + "..."


def _build_message(token: str, title: str, body: str, payload: Dict[str, str], collapse_key: str):
    return messaging.Message(
        token=token,
        notification=messaging.Notification(title=title, body=body),
        data={**payload, "_dedupKey": collapse_key, "_timestamp": str(int(time.time() * 1000))},
        android=messaging.AndroidConfig(
            priority="high",
            collapse_key=collapse_key,
            notification=messaging.AndroidNotification(
                channel_id="default", sound="default", tag=collapse_key
            ),
        ),
        apns=messaging.APNSConfig(
            headers={"apns-collapse-id": collapse_key},
            payload=messaging.APNSPayload(
                aps=messaging.Aps(sound="default", thread_id=collapse_key)
            ),
        ),
    )


def send_push_notification(
    db: Session,
    token: str,
    title: str,
    body: str,
    data: Optional[Dict[str, Any]] = None,
    *,
    source: str = "system",
    notification_type: str = "general",
    source_id: Optional[str] = None,
    recipient_email: Optional[str] = None,
) -> PushResult:
    """
    Send one push to one device token and record it in push_notification_logs.

    FCM errors never raise; they come back as PushResult(success=False).
    A token FCM reports as unregistered/invalid is cleared from app_users.
    DB commit is the caller's job.
    """
    payload = _data_to_str(data)
    log = PushNotificationLog(
        recipient_email=recipient_email,
        recipient_fcm_token=mask_token(token),
        title=title,
        body=body,
        data_payload=payload or None,
        source=source,
        type=notification_type,
        source_id=source_id,
        status="pending",
    )
    db.add(log)

    if not _firebase_ready():
        _finish_log(log, success=False, error=FCM_NOT_READY, error_code="FCM_NOT_INITIALIZED")
        return PushResult(success=False, error=FCM_NOT_READY, error_code="FCM_NOT_INITIALIZED")

    collapse_key = f"notif_{source_id}" if source_id else f"notif_{int(time.time() * 1000)}"

    try:
        message_id = messaging.send(_build_message(token, title, body, payload, collapse_key))
    except Exception as e:
        code = str(getattr(e, "code", "") or "") or None
        if _is_dead_token(e):
            cleared = db.execute(
                update(AppUser).where(AppUser.fcm_token == token).values(fcm_token=None)
            ).rowcount
            logger.warning(
                "[fcm] dead token %s cleared from %d user(s)", mask_token(token), cleared
            )
            _finish_log(log, success=False, error=INVALID_TOKEN, error_code=code)
            return PushResult(success=False, error=INVALID_TOKEN, error_code=code)

        error = str(e) or "Failed to send push notification"
        logger.error("[fcm] send failed token=%s err=%s", mask_token(token), error)
        _finish_log(log, success=False, error=error, error_code=code)
        return PushResult(success=False, error=error, error_code=code)

    logger.info("[fcm] sent %s -> %s", collapse_key, message_id)
    _finish_log(log, success=True, message_id=message_id)
    return PushResult(success=True, message_id=message_id)


def _finish_log(
    log: PushNotificationLog,
    success: bool,
    error: Optional[str] = None,
    error_code: Optional[str] = None,
    message_id: Optional[str] = None,
) -> None:
    log.status = "sent" if success else "failed"
    log.success_count = 1 if success else 0
    log.failure_count = 0 if success else 1
    log.error_message = error
    log.error_code = error_code
    log.fcm_message_id = message_id
    log.sent_at = utc_now()


def register_fcm_token(db: Session, wp_user_id: str, email: str, token: str) -> AppUser:
    """Find-or-create the member by wp_user_id and store the device token."""
    user = db.execute(select(AppUser).where(AppUser.wp_user_id == wp_user_id)).scalars().first()
    email = email.strip().lower()

    if user:
        user.fcm_token = token
        if email and email != user.email:
            user.email = email
    else:
        user = AppUser(wp_user_id=wp_user_id, email=email, fcm_token=token)
        db.add(user)

    db.flush()
    return user


def remove_fcm_token(db: Session, user: AppUser) -> int:
    if not user.fcm_token:
        return 0
    user.fcm_token = None
    return 1
