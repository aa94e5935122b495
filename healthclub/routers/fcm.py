# healthclub/routers/fcm.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from healthclub.auth.dependencies import require_api_key
from healthclub.db.database import get_db
from healthclub.schemas.schema_fcm import (
    FcmTokenRegister,
    FcmTokenRegisterResponse,
    FcmTokenRemoveResponse,
    FcmTokenUser,
)
from healthclub.services.check_in import resolve_app_user
from healthclub.services.fcm_push import register_fcm_token, remove_fcm_token

router = APIRouter(
    prefix="/app-users", tags=["FCM"], dependencies=[Depends(require_api_key)]
)


@router.post("/fcm-token", response_model=FcmTokenRegisterResponse)
def register_token(body: FcmTokenRegister, db: Session = Depends(get_db)):
    """
    Register or refresh the device token.

    Call after login and whenever the Firebase SDK rotates the token.
    The member is created on first registration.
    """
    user = register_fcm_token(db, body.wpUserId, body.email, body.fcmToken)
    db.commit()
    return FcmTokenRegisterResponse(
        message="FCM token registered successfully",
        user=FcmTokenUser(
            id=user.id,
            wpUserId=user.wp_user_id,
            email=user.email,
            fcmTokenRegistered=bool(user.fcm_token),
        ),
    )


@router.delete("/fcm-token", response_model=FcmTokenRemoveResponse)
def unregister_token(
    wpUserId: Optional[str] = Query(None),
    email: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    """Logout / push opt-out. {"removed": 0} means no token was stored."""
    user = resolve_app_user(db, wp_user_id=wpUserId, email=email)
    removed = remove_fcm_token(db, user)
    db.commit()
    return FcmTokenRemoveResponse(message="FCM token removed successfully", removed=removed)
