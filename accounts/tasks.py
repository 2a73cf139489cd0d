from datetime import timedelta

from botocore.exceptions import ClientError
from django.conf import settings
from django.utils import timezone
from celery import shared_task

from accounts.utils import get_ses_client, frontend_url

import logging

logger = logging.getLogger("trivify")


@shared_task
def send_ses_email(to_email: list, subject, body_text, body_html=None, from_email=None):
    """Hand one rendered notification to SES and return its message id."""
    recipients = ", ".join(to_email)

    ses_client = get_ses_client()
    if ses_client is None:
        logger.error(f"No SES client, mail '{subject}' to {recipients} not delivered")
        raise RuntimeError("SES client could not be created")

    body = {"Text": {"Data": body_text, "Charset": "UTF-8"}}
    if body_html:
        body["Html"] = {"Data": body_html, "Charset": "UTF-8"}

    try:
        response = ses_client.send_email(
            Source=from_email or settings.DEFAULT_FROM_EMAIL,
            Destination={"ToAddresses": to_email},
            Message={"Subject": {"Data": subject, "Charset": "UTF-8"}, "Body": body},
            ReplyToAddresses=[settings.SUPPORT_EMAIL],
        )
    except ClientError as e:
        reason = e.response.get("Error", {}).get("Message", str(e))
        logger.error(f"SES rejected mail '{subject}' to {recipients}: {reason}")
        raise

    message_id = response.get("MessageId")
    logger.info(f"SES accepted mail '{subject}' to {recipients} ({message_id})")
    return message_id


@shared_task
def delete_unverified_accounts():
    """Remove registrations whose verification link expired unused."""
    from accounts.models import User, UserStatus

    expiry_time = timezone.now() - timedelta(seconds=settings.PASSWORD_RESET_TIMEOUT)

    expired = User.objects.filter(status=UserStatus.PENDING_VERIFICATION, created_at__lt=expiry_time)

    for user in expired:
        logger.info(f"Deleting unverified account {user.email}")

    deleted, _ = expired.delete()
    return deleted


@shared_task
def complete_deletion_requests():
    from accounts.emails import send_email
    from accounts.models import User, UserStatus
    from accounts.services import delete_user_account

    now = timezone.now()
    warning_time = now - timedelta(days=settings.ACCOUNT_DELETION_WARNING_DAYS)
    expiry_time = now - timedelta(days=settings.ACCOUNT_DELETION_GRACE_DAYS)

    pending = User.objects.filter(status=UserStatus.PENDING_DELETE)

    # Runs hourly, so a one hour window warns every account exactly once
    warned = 0
    for user in pending.filter(deletion_requested_at__lt=warning_time,
                               deletion_requested_at__gte=warning_time - timedelta(hours=1)):
        send_email(user.email, "Reminder: your account will be deleted", "account-delete-warning", {
            "username": user.username,
            "loginUrl": frontend_url("/login"),
        })
        warned += 1

    purged = 0
    for user in pending.filter(deletion_requested_at__lt=expiry_time):
        send_email(user.email, "Your account data has been deleted", "account-deleted", {
            "username": user.username,
            "loginUrl": frontend_url("/login"),
            "registerUrl": frontend_url("/register"),
        })
        delete_user_account(user.pk)
        purged += 1

    logger.info(f"Deletion requests: {warned} warned, {purged} purged")
    return {"warned": warned, "purged": purged}
