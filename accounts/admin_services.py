"""User management for administrators."""
import logging

from django.contrib.auth import get_user_model
from django.db import transaction
from django.utils import timezone

from accounts.emails import send_email
from accounts.models import UserRole, UserStatus
from accounts.services import delete_user_account, get_user
from accounts.utils import frontend_url, is_reserved_username
from trivify.exceptions import ValidationFailed

logger = logging.getLogger("trivify")

User = get_user_model()


def mail_variables(user, password=None):
    variables = {
        "username": user.username,
        "email": user.email,
        "loginUrl": frontend_url("/login"),
        "registerUrl": frontend_url("/register"),
    }
    if password:
        variables["password"] = password
    return variables


def check_unique(name, email, exclude_pk=None):
    users = User.objects.exclude(pk=exclude_pk) if exclude_pk else User.objects.all()
    if name and users.filter(username=name).exists():
        raise ValidationFailed("This username is already taken")
    # The daily quiz owner may keep its own name
    if is_reserved_username(name) and not User.objects.filter(pk=exclude_pk, username=name).exists():
        raise ValidationFailed("This username is already taken")
    if email and users.filter(email__iexact=email).exists():
        raise ValidationFailed("This e-mail address is already in use")


def create_user(data):
    check_unique(data["name"], data["email"])

    user = User(
        username=data["name"],
        email=data["email"],
        role=data.get("role") or UserRole.USER,
        status=data.get("status") or UserStatus.ACTIVE,
        daily_quiz_reminder=data.get("dailyQuizReminder", False),
        daily_streak=data.get("dailyStreak") or 0,
    )
    user.set_password(data["password"])
    user.save()

    send_email(user.email, "An administrator created your account", "account-created",
               mail_variables(user, data["password"]))
    logger.info(f"Admin created account {user.email}")
    return user


def dispatch_update_notifications(before, user, new_password=None):
    """
    Send the specific mails for what an admin changed on ``user``.

    ``before`` holds the role, status and password hash prior to the update.
    Returns whether any specific mail was sent.
    """
    variables = mail_variables(user, new_password)
    custom_mail_sent = False

    if before["role"] != UserRole.ADMIN and user.role == UserRole.ADMIN:
        custom_mail_sent |= send_email(user.email, "You are now an administrator", "admin-promoted", variables)
    elif before["role"] == UserRole.ADMIN and user.role != UserRole.ADMIN:
        custom_mail_sent |= send_email(user.email, "You are no longer an administrator", "admin-demoted", variables)

    if before["status"] != UserStatus.BLOCKED and user.status == UserStatus.BLOCKED:
        custom_mail_sent |= send_email(user.email, "Your account has been blocked", "account-blocked", variables)
    elif before["status"] == UserStatus.BLOCKED and user.status != UserStatus.BLOCKED:
        custom_mail_sent |= send_email(user.email, "Your account has been unblocked", "account-unblocked", variables)

    if new_password and before["password"] != user.password:
        custom_mail_sent |= send_email(user.email, "An administrator changed your password", "password-changed",
                                       variables)

    return custom_mail_sent


def update_user(user_id, data, provided=()):
    """
    Apply the non-empty values of ``data``. ``provided`` names the raw keys
    the admin sent, so a missing ``dailyQuizReminder`` leaves the flag alone.
    """
    user = get_user(user_id)
    check_unique(data.get("name"), data.get("email"), exclude_pk=user.pk)

    before = {"role": user.role, "status": user.status, "password": user.password}
    new_password = data.get("password")

    with transaction.atomic():
        if data.get("name"):
            user.username = data["name"]
        if data.get("email"):
            user.email = data["email"]
        if new_password and not user.check_password(new_password):
            user.set_password(new_password)
        if data.get("status"):
            user.status = data["status"]
        if data.get("role"):
            user.role = data["role"]
        if "dailyQuizReminder" in provided:
            user.daily_quiz_reminder = data["dailyQuizReminder"]

        streak = data.get("dailyStreak")
        if streak is not None and streak != user.daily_streak:
            user.daily_streak = streak
            user.last_daily_quiz_played = timezone.now()

        user.save()

    custom_mail_sent = dispatch_update_notifications(before, user, new_password)
    if not custom_mail_sent:
        send_email(user.email, "An administrator updated your account", "account-updated",
                   mail_variables(user, new_password))

    logger.info(f"Admin updated account {user.email}")
    return user


def delete_user(user_id):
    user = get_user(user_id)
    send_email(user.email, "An administrator deleted your account", "account-deleted", mail_variables(user))
    delete_user_account(user.pk)
