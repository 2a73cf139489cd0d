import os
import logging

from celery import Celery
from celery.schedules import crontab
from celery.signals import worker_ready

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "trivify.settings")

logger = logging.getLogger("trivify")

app = Celery("trivify")

app.config_from_object("django.conf:settings", namespace="CELERY")

app.autodiscover_tasks()

app.conf.beat_schedule = {
    "generate-daily-quiz": {
        "task": "quiz.tasks.generate_daily_quiz",
        "schedule": crontab(hour=0, minute=0),
    },
    "daily-quiz-streak-reminder": {
        "task": "quiz.tasks.daily_quiz_streak_reminder",
        "schedule": crontab(hour=18, minute=0),
    },
    "complete-deletion-requests": {
        "task": "accounts.tasks.complete_deletion_requests",
        "schedule": crontab(minute=0),
    },
    "delete-unverified-accounts": {
        "task": "accounts.tasks.delete_unverified_accounts",
        "schedule": crontab(),
    },
}


@worker_ready.connect
def generate_daily_quiz_on_start(sender, **kwargs):
    # Covers a midnight run missed while the workers were down
    logger.info("Worker ready, checking whether today's daily quiz must be generated")
    sender.app.send_task("quiz.tasks.generate_daily_quiz")
