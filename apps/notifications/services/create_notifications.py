import logging

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.db import transaction

from apps.notifications.models import Notification

logger = logging.getLogger(__name__)


def _push(notif):
    channel_layer = get_channel_layer()
    if channel_layer is None:
        return

    async_to_sync(channel_layer.group_send)(
        f"user_{notif.recipient_id}",
        {
            "type": "send_notification",
            "id": notif.id,
            "title": notif.title,
            "message": notif.message,
            "notif_type": notif.notif_type,
            "data": notif.data,
            "created_at": notif.created_at.isoformat(),
            "is_read": notif.is_read,
        },
    )


def notify_user(recipient, notif_type, title, message="", data=None):
    """
    Store the notification, push it to the recipient's socket group and
    queue the e-mail copy. Best-effort: returns None on any failure.
    """
    from apps.notifications.tasks import send_notification_email

    try:
        notif = Notification.objects.create(
            recipient=recipient,
            notif_type=notif_type,
            title=title,
            message=message,
            data=data or {},
        )
        _push(notif)
        send_notification_email.delay(notif.id)
    except Exception:
        logger.exception("Failed to notify user #%s (%s)", getattr(recipient, "id", None), notif_type)
        return None

    return notif


def notify_on_commit(recipient, notif_type, title, message="", data=None):
    """
    Defer `notify_user` until the surrounding transaction commits.
    """
    transaction.on_commit(
        lambda: notify_user(recipient, notif_type, title, message=message, data=data)
    )
