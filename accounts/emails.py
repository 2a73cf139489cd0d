"""
E-mail dispatch.

Every notification goes through :func:`send_email`, which applies the
suppression rules for unverified and blocked accounts, renders the HTML
template and hands the message to the SES Celery task.
"""
import logging

from django.conf import settings
from django.contrib.auth import get_user_model
from django.template.loader import render_to_string
from django.utils.html import strip_tags

from accounts.models import UserStatus
from accounts.tasks import send_ses_email
from accounts.utils import frontend_url

logger = logging.getLogger("trivify")

# Templates that still reach unverified, blocked or unknown recipients
ACCOUNT_LIFECYCLE_TEMPLATES = frozenset({
    "account-blocked",
    "account-delete-info",
    "account-delete-warning",
    "account-deleted",
    "account-reactivated",
    "password-reset-email",
    "verification-email",
})

SUPPRESSED_STATUSES = (UserStatus.PENDING_VERIFICATION, UserStatus.BLOCKED)


def recipient_accepts(recipient, template_name):
    if template_name in ACCOUNT_LIFECYCLE_TEMPLATES:
        return True

    User = get_user_model()
    status = User.objects.filter(email__iexact=recipient).values_list("status", flat=True).first()
    return status is not None and status not in SUPPRESSED_STATUSES


def send_email(recipient, subject, template_name, variables=None):
    """
    Queue a templated mail. Returns ``True`` when the mail was queued and
    ``False`` when the recipient's account status suppressed it.
    """
    if not recipient_accepts(recipient, template_name):
        logger.info(f"Suppressed '{template_name}' mail to {recipient}")
        return False

    context = {
        "logoUrl": frontend_url("/logo192.png"),
        "supportEmail": settings.SUPPORT_EMAIL,
        "subject": subject,
    }
    context.update(variables or {})

    body_html = render_to_string(f"emails/{template_name}.html", context)

    send_ses_email.delay(to_email=[recipient],
                         from_email=settings.DEFAULT_FROM_EMAIL,
                         subject=subject,
                         body_text=strip_tags(body_html).strip(),
                         body_html=body_html)

    logger.info(f"Queued '{template_name}' mail to {recipient}")
    return True
