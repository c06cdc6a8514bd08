import logging

from celery import shared_task
from django.conf import settings
from django.core.mail import EmailMultiAlternatives

from apps.notifications.models import Notification

logger = logging.getLogger(__name__)


@shared_task(
    bind=True,
    autoretry_for=(Exception,),
    retry_backoff=10,
    retry_kwargs={"max_retries": 3},
)
def send_notification_email(self, notification_id):
    """
    E-mail copy of a stored notification.
    """
    try:
        notif = Notification.objects.select_related("recipient").get(id=notification_id)
    except Notification.DoesNotExist:
        return

    recipient = notif.recipient
    if not recipient.email:
        return

    body = notif.message or notif.title
    link = notif.data.get("project_id")
    if link:
        body = f"{body}\n\n{settings.SITE_URL}/projects/{link}/"

    msg = EmailMultiAlternatives(
        subject=notif.title,
        body=body,
        from_email=settings.DEFAULT_FROM_EMAIL,
        to=[recipient.email],
    )
    msg.send()
    logger.info("Notification #%s e-mailed to %s", notif.id, recipient.email)
