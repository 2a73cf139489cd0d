import logging

from django.contrib.auth import authenticate, get_user_model
from django.db import transaction
from django.utils import timezone
from django.utils.encoding import force_str
from django.utils.http import urlsafe_base64_decode

from accounts.backends import find_login_candidate
from accounts.emails import send_email
from accounts.models import UserStatus
from accounts.tokens import account_activation_token, issue_auth_token
from accounts.utils import encode_uid, frontend_url, is_reserved_username
from quiz.models import Question, Quiz, QuizFavorite, QuizRating, QuizResult
from quiz.services import has_completed_daily_quiz
from trivify.exceptions import ActionNotAllowed, AuthenticationFailed, NotFound, ValidationFailed

logger = logging.getLogger("trivify")

User = get_user_model()


def get_user(user_id):
    try:
        return User.objects.get(pk=user_id)
    except User.DoesNotExist:
        raise NotFound("User not found")


def send_verification_email(user):
    link = frontend_url(f"/verify-email/{encode_uid(user)}/{account_activation_token.make_token(user)}")
    return send_email(user.email, "Verify your e-mail address", "verification-email", {
        "username": user.username,
        "verificationUrl": link,
    })


def send_password_reset_email(user):
    link = frontend_url(f"/reset-password/{encode_uid(user)}/{account_activation_token.make_token(user)}")
    return send_email(user.email, "Reset your password", "password-reset-email", {
        "username": user.username,
        "resetUrl": link,
    })


def register_user(name, email, password, daily_quiz_reminder=False):
    if is_reserved_username(name) or User.objects.filter(username=name).exists():
        raise ValidationFailed("This username is already taken")

    existing = User.objects.filter(email__iexact=email).first()
    if existing is not None:
        # Do not reveal the account, offer a reset instead
        send_password_reset_email(existing)
        return "An account with this e-mail already exists. Check your inbox to reset your password."

    user = User(username=name, email=email, daily_quiz_reminder=daily_quiz_reminder,
                status=UserStatus.PENDING_VERIFICATION)
    user.set_password(password)
    user.save()

    logger.info(f"Registered pending account {user.email}")
    send_verification_email(user)
    return "Please check your e-mail address to complete the registration."


def user_from_link(uidb64, token):
    try:
        uid = force_str(urlsafe_base64_decode(uidb64))
        user = User.objects.get(pk=uid)
    except (TypeError, ValueError, OverflowError, User.DoesNotExist):
        user = None

    if user is None or not account_activation_token.check_token(user, token):
        raise ValidationFailed("Invalid or expired link")

    return user


def verify_email(uidb64, token):
    user = user_from_link(uidb64, token)
    user.status = UserStatus.ACTIVE
    user.save()
    logger.info(f"Verified account {user.email}")
    return user


def login_user(login, password):
    """Return ``(bearer_token, user)`` for valid credentials."""
    user = authenticate(None, username=login, password=password)

    if user is None:
        candidate = find_login_candidate(login)
        if candidate is not None and candidate.check_password(password):
            if candidate.status == UserStatus.PENDING_VERIFICATION:
                raise ValidationFailed("E-mail address not verified")
            if candidate.status == UserStatus.BLOCKED:
                raise ActionNotAllowed("This account is blocked")
        raise AuthenticationFailed("Invalid e-mail or password")

    if user.status == UserStatus.PENDING_DELETE:
        user.status = UserStatus.ACTIVE
        user.deletion_requested_at = None
        user.save()
        send_email(user.email, "Account reactivated", "account-reactivated", {
            "username": user.username,
            "quizUrl": frontend_url("/daily-quiz"),
        })

    user.last_login = timezone.now()
    user.save(update_fields=["last_login"])

    return issue_auth_token(user), user


def forgot_password(email):
    user = User.objects.filter(email__iexact=email).first()
    if user is None:
        raise NotFound("User not found")
    send_password_reset_email(user)


def reset_password(uidb64, token, new_password):
    user = user_from_link(uidb64, token)
    user.set_password(new_password)
    user.status = UserStatus.ACTIVE
    user.save()
    return user


def update_daily_quiz_reminder(user_id, reminder):
    user = get_user(user_id)
    user.daily_quiz_reminder = reminder
    user.save(update_fields=["daily_quiz_reminder", "updated_at"])
    return user


def update_profile(user, name, email, daily_quiz_reminder):
    if is_reserved_username(name) or User.objects.filter(username=name).exclude(pk=user.pk).exists():
        raise ValidationFailed("This username is already taken")
    if User.objects.filter(email__iexact=email).exclude(pk=user.pk).exists():
        raise ValidationFailed("This e-mail address is already in use")

    user.username = name
    user.email = email
    user.daily_quiz_reminder = daily_quiz_reminder
    user.save()
    return user


def update_password(user, current_password, new_password):
    if not user.check_password(current_password):
        raise ValidationFailed("Current password is incorrect")
    user.set_password(new_password)
    user.save()


def request_account_deletion(user):
    user.status = UserStatus.PENDING_DELETE
    user.deletion_requested_at = timezone.now()
    user.save()
    send_email(user.email, "Account scheduled for deletion", "account-delete-info", {
        "username": user.username,
        "loginUrl": frontend_url("/login"),
    })
    logger.info(f"Account {user.email} marked for deletion")


def increment_daily_streak(user):
    """
    Count today's daily quiz towards the user's streak.

    A user is counted at most once per calendar day; later calls only
    refresh the last-played timestamp and return the unchanged streak. The
    user row stays locked for the check so parallel submissions are
    serialized.
    """
    today = timezone.localdate()

    with transaction.atomic():
        user = User.objects.select_for_update().get(pk=user.pk)

        already_counted = user.streak_counted_on == today or has_completed_daily_quiz(user.pk, today)

        user.last_daily_quiz_played = timezone.now()
        if not already_counted:
            user.daily_streak += 1
            user.streak_counted_on = today
            logger.info(f"Daily streak of {user.email} is now {user.daily_streak}")

        user.save(update_fields=["last_daily_quiz_played", "streak_counted_on", "daily_streak", "updated_at"])

    return user.daily_streak


def delete_user_account(user_id):
    """Hard delete a user together with everything that references them."""
    with transaction.atomic():
        user = get_user(user_id)
        own_quizzes = Quiz.objects.filter(creator=user)

        QuizResult.objects.filter(user=user).delete()
        QuizResult.objects.filter(quiz__in=own_quizzes).delete()
        QuizRating.objects.filter(user=user).delete()
        QuizRating.objects.filter(quiz__in=own_quizzes).delete()
        Question.objects.filter(quiz__in=own_quizzes).delete()
        QuizFavorite.objects.filter(quiz__in=own_quizzes).delete()
        own_quizzes.delete()
        QuizFavorite.objects.filter(user=user).delete()
        user.delete()

    logger.info(f"Purged account {user_id}")
