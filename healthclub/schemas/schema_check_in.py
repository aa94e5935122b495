# healthclub/schemas/schema_check_in.py
import datetime as dt
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, Field, field_validator, model_validator

from healthclub.errors import BadRequestError
from healthclub.models.daily_check_in import DailyCheckIn
from healthclub.services.dates import parse_day


class CheckInCreate(BaseModel):
    userId: Optional[str] = None
    wpUserId: Optional[Union[str, int]] = None
    email: Optional[str] = None
    medicationName: Optional[str] = Field(default=None, max_length=120)
    nextDueDate: Optional[dt.date] = None
    deviceInfo: Optional[str] = Field(default=None, max_length=500)

    @field_validator("userId", "email", mode="before")
    @classmethod
    def blank_as_none(cls, v):
        if isinstance(v, str):
            return v.strip() or None
        return v

    @field_validator("wpUserId")
    @classmethod
    def wp_user_id_as_str(cls, v):
        if v is None:
            return None
        return str(v).strip() or None

    @field_validator("nextDueDate", mode="before")
    @classmethod
    def strict_day(cls, v):
        if v is None or v == "":
            return None
        if isinstance(v, dt.date):
            return v
        try:
            return parse_day(str(v), "nextDueDate")
        except BadRequestError as e:
            raise ValueError(e.message)

    @model_validator(mode="after")
    def require_identifier(self):
        if not (self.userId or self.wpUserId or self.email):
            raise ValueError("userId, wpUserId or email is required")
        return self


class CheckInOut(BaseModel):
    id: str
    userId: str
    date: str
    medicationName: str
    nextDueDate: Optional[str] = None
    deviceInfo: Optional[str] = None
    createdAt: str

    @classmethod
    def from_row(cls, row: DailyCheckIn) -> "CheckInOut":
        return cls(
            id=row.id,
            userId=row.app_user_id,
            date=row.date.isoformat(),
            medicationName=row.medication_name,
            nextDueDate=row.next_due_date.isoformat() if row.next_due_date else None,
            deviceInfo=row.device_info,
            createdAt=row.created_at.isoformat(),
        )


class UserRef(BaseModel):
    id: str
    email: str
    wpUserId: Optional[str] = None


class ReminderDates(BaseModel):
    immediate: str
    dayBefore: Optional[str] = None
    onDate: Optional[str] = None


class CheckInCreateResponse(BaseModel):
    success: bool = True
    alreadyCheckedIn: bool
    message: str
    checkIn: CheckInOut
    user: UserRef
    scheduledNotifications: Optional[ReminderDates] = None
    reminderError: Optional[str] = None


class CheckInStatusResponse(BaseModel):
    success: bool = True
    date: str
    checkedIn: bool
    checkIns: List[CheckInOut]
    user: UserRef
    history: Optional[List[CheckInOut]] = None
    streak: Optional[int] = None


class CalendarDay(BaseModel):
    date: str
    hasCheckIn: bool
    medications: List[str]
    time: Optional[str] = None


class CheckInCalendarResponse(BaseModel):
    success: bool = True
    user: UserRef
    startDate: str
    endDate: str
    days: List[CalendarDay]
    streak: Optional[int] = None


class DateRange(BaseModel):
    start: str
    end: str


class LoggedDatesResponse(BaseModel):
    success: bool = True
    range: DateRange
    months: int
    total: int
    dates: List[str]
    byDate: Dict[str, List[str]]
