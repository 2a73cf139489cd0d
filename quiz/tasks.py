import logging

from celery import shared_task

logger = logging.getLogger("trivify")


@shared_task
def generate_daily_quiz():
    from quiz.daily import run_daily_quiz_sweep

    state = run_daily_quiz_sweep()
    logger.info(f"Daily quiz run finished in state {state.value}")
    return state.value


@shared_task
def daily_quiz_streak_reminder():
    from accounts.streaks import remind_streaks_at_risk

    return remind_streaks_at_risk()
