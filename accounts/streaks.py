"""
Daily streak bookkeeping.

:func:`sweep` runs right after the daily quiz is published: it resets the
streak of everyone who missed yesterday's quiz and reminds opted-in users
to play today. :func:`remind_streaks_at_risk` is the evening pass for
players who have not played yet.
"""
import logging
from dataclasses import dataclass
from datetime import timedelta

from django.contrib.auth import get_user_model
from django.utils import timezone

from accounts.emails import send_email
from accounts.utils import frontend_url
from quiz.models import Quiz

logger = logging.getLogger("trivify")


@dataclass
class SweepSummary:
    reset: int = 0
    lost_mails: int = 0
    reminders: int = 0


def last_played_date(user):
    if user.last_daily_quiz_played is None:
        return None
    return timezone.localtime(user.last_daily_quiz_played).date()


def should_reset(user, yesterday, quiz_existed_yesterday):
    if user.daily_streak <= 0 or not quiz_existed_yesterday:
        return False
    played = last_played_date(user)
    return played is None or played < yesterday


def sweep(today=None):
    today = today or timezone.localdate()
    yesterday = today - timedelta(days=1)
    quiz_existed_yesterday = Quiz.objects.daily_for(yesterday).exists()
    quiz_url = frontend_url("/daily-quiz")

    summary = SweepSummary()

    for user in get_user_model().objects.all():
        if should_reset(user, yesterday, quiz_existed_yesterday):
            old_streak = user.daily_streak
            user.daily_streak = 0
            user.save(update_fields=["daily_streak", "updated_at"])
            summary.reset += 1
            logger.info(f"Reset daily streak of {user.email} (was {old_streak})")

            if user.daily_quiz_reminder:
                sent = send_email(user.email, "You lost your daily streak", "daily-quiz-streak-lost", {
                    "username": user.username,
                    "oldStreak": old_streak,
                    "quizUrl": quiz_url,
                })
                summary.lost_mails += int(sent)

        elif user.daily_quiz_reminder and last_played_date(user) != today:
            sent = send_email(user.email, "Your daily quiz is waiting", "daily-quiz-reminder", {
                "username": user.username,
                "quizUrl": quiz_url,
            })
            summary.reminders += int(sent)

    logger.info(f"Streak sweep for {today}: {summary}")
    return summary


def remind_streaks_at_risk(today=None):
    today = today or timezone.localdate()
    reminded = 0

    for user in get_user_model().objects.filter(daily_quiz_reminder=True, daily_streak__gt=0):
        played = last_played_date(user)
        if played is not None and played >= today:
            continue

        if send_email(user.email, "Your streak is at risk", "daily-quiz-streak-reminder", {
            "username": user.username,
            "streak": user.daily_streak,
            "quizUrl": frontend_url("/daily-quiz"),
        }):
            reminded += 1

    logger.info(f"Sent {reminded} streak reminders for {today}")
    return reminded
