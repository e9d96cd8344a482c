"""
Notification delivery channels

A channel takes (recipient_id, title, message, payload, priority) and
returns how many deliveries it managed (0 or more). Channels are best
effort: they may raise, and callers decide what a failure means.
The active channel is chosen with the LIFELINK_NOTIFICATION_CHANNEL setting.
"""
import logging

from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.mail import send_mail
from django.utils.module_loading import import_string

logger = logging.getLogger(__name__)

PRIORITY_HIGH = 'HIGH'
PRIORITY_MEDIUM = 'MEDIUM'
PRIORITY_LOW = 'LOW'


class BaseChannel:
    name = 'base'

    def send(self, recipient_id, title, message, payload=None, priority=PRIORITY_MEDIUM):
        raise NotImplementedError


class EmailChannel(BaseChannel):
    """Deliver through Django's email backend to the recipient's address"""
    name = 'email'

    def send(self, recipient_id, title, message, payload=None, priority=PRIORITY_MEDIUM):
        User = get_user_model()
        email = User.objects.filter(pk=recipient_id, is_active=True).values_list('email', flat=True).first()
        if not email:
            logger.info(f"No email address for user {recipient_id}; skipping {self.name} delivery")
            return 0

        subject = f"[URGENT] {title}" if priority == PRIORITY_HIGH else title
        return send_mail(
            subject=subject,
            message=message,
            from_email=settings.DEFAULT_FROM_EMAIL,
            recipient_list=[email],
            fail_silently=False,
        )


class LoggingChannel(BaseChannel):
    """Development channel: writes the notification to the log"""
    name = 'log'

    def send(self, recipient_id, title, message, payload=None, priority=PRIORITY_MEDIUM):
        logger.info(f"[{priority}] to user {recipient_id}: {title} - {message} {payload or {}}")
        return 1


def get_channel():
    channel_class = import_string(settings.LIFELINK_NOTIFICATION_CHANNEL)
    return channel_class()
