# healthclub/models/__init__.py
from healthclub.models.app_user import AppUser, UserStatus
from healthclub.models.daily_check_in import DailyCheckIn
from healthclub.models.scheduled_notification import (
    NotificationStatus,
    ScheduledNotification,
    ScheduledType,
)
from healthclub.models.push_notification_log import PushNotificationLog
from healthclub.models.webhook_log import WebhookLog
from healthclub.models.app_settings import AppSettings
from healthclub.models.api_key import ApiKey
