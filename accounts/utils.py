import boto3
from django.conf import settings
from django.utils.encoding import force_bytes
from django.utils.http import urlsafe_base64_encode

import logging

logger = logging.getLogger("trivify")


def get_ses_client():

    if settings.DJANGO_ENV != "DEVELOPMENT":
        # Deployed workers pick up credentials from their instance role
        try:
            return boto3.client('ses', region_name=settings.AWS_REGION)
        except Exception as e:
            logger.error("Failed to create SES client from the instance role")
            logger.error(e)

    try:
        ses_client = boto3.client(
            'ses',
            aws_access_key_id=settings.AWS_ACCESS_KEY,
            aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY,
            region_name=settings.AWS_REGION
        )

    except Exception as e:
        logger.error("Failed to create SES client with explicit credentials")
        logger.error(e)
        return None

    else:
        return ses_client


def frontend_url(path=""):
    return f"{settings.FRONTEND_URL.rstrip('/')}/{path.lstrip('/')}"


def encode_uid(user):
    return urlsafe_base64_encode(force_bytes(user.pk))


def serialize_user(user):
    return {
        "id": user.pk,
        "name": user.username,
        "email": user.email,
        "role": user.role,
        "status": user.status,
        "dailyQuizReminder": user.daily_quiz_reminder,
        "dailyStreak": user.daily_streak,
        "lastDailyQuizPlayed": user.last_daily_quiz_played.isoformat() if user.last_daily_quiz_played else None,
        "createdAt": user.created_at.isoformat() if user.created_at else None,
        "updatedAt": user.updated_at.isoformat() if user.updated_at else None,
    }


def is_reserved_username(name):
    return bool(name) and name.strip().lower() == settings.SYSTEM_ADMIN_USERNAME.lower()
