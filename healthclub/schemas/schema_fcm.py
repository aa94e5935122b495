# healthclub/schemas/schema_fcm.py
from typing import Union

from pydantic import BaseModel, Field, field_validator


class FcmTokenRegister(BaseModel):
    wpUserId: Union[str, int]
    email: str = Field(..., min_length=3)
    fcmToken: str = Field(..., min_length=10)

    @field_validator("wpUserId")
    @classmethod
    def wp_user_id_as_str(cls, v):
        v = str(v).strip()
        if not v:
            raise ValueError("wpUserId is required")
        return v


class FcmTokenUser(BaseModel):
    id: str
    wpUserId: str
    email: str
    fcmTokenRegistered: bool


class FcmTokenRegisterResponse(BaseModel):
    success: bool = True
    message: str
    user: FcmTokenUser


class FcmTokenRemoveResponse(BaseModel):
    success: bool = True
    message: str
    removed: int
