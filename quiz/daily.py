"""
Daily quiz lifecycle.

Once per day a quiz is generated for a random category, stored with the
current date and owned by the system admin account. The date column is
unique, so a second daily quiz for the same day is rejected by the database.
"""
import enum
import logging
import random

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction
from django.utils import timezone

from accounts.models import UserRole, UserStatus
from accounts.streaks import sweep as sweep_streaks
from quiz.exceptions import DailyQuizConflict, GenerationFailure
from quiz.llm_integration import fetch_quiz_questions
from quiz.models import Question, QuestionType, Quiz, QuizCategory

logger = logging.getLogger("trivify")

DAILY_QUIZ_SOURCE = "Daily quiz"
DAILY_QUIZ_DIFFICULTY = 1

EXCLUDED_DAILY_CATEGORIES = (QuizCategory.DAILY_QUIZ, QuizCategory.GENERAL_KNOWLEDGE)


class DailyQuizState(enum.Enum):
    NO_QUIZ_TODAY = "NO_QUIZ_TODAY"
    GENERATING = "GENERATING"
    PUBLISHED = "PUBLISHED"


def pick_daily_category():
    return random.choice([category for category in QuizCategory if category not in EXCLUDED_DAILY_CATEGORIES])


def free_system_username():
    """The reserved owner name, suffixed if an older account already holds it."""
    User = get_user_model()
    base = settings.SYSTEM_ADMIN_USERNAME
    username = base
    suffix = 1

    while User.objects.filter(username__iexact=username).exists():
        suffix += 1
        username = f"{base}-{suffix}"

    return username


def get_or_create_system_admin():
    User = get_user_model()

    admin = User.objects.filter(email__iexact=settings.SYSTEM_ADMIN_EMAIL).first()
    if admin is not None:
        return admin

    admin = User(username=free_system_username(), email=settings.SYSTEM_ADMIN_EMAIL,
                 status=UserStatus.ACTIVE, role=UserRole.ADMIN)
    admin.set_password(settings.SYSTEM_ADMIN_PASSWORD)
    admin.save()
    logger.info(f"Created system admin {admin.email}")
    return admin


def build_daily_quiz(questions, category, day=None):
    """Persist ``questions`` as the daily quiz of ``day`` (today by default)."""
    day = day or timezone.localdate()

    try:
        with transaction.atomic():
            owner = get_or_create_system_admin()
            quiz = Quiz.objects.create(
                title=f"Daily quiz of {day.isoformat()}, category: {category.label}",
                description=f"Today's quiz about {category.label.lower()}",
                creator=owner,
                categories=[QuizCategory.DAILY_QUIZ.value, category.value],
                is_public=True,
                date=day,
            )

            for position, item in enumerate(questions, start=1):
                Question.objects.create(
                    quiz=quiz,
                    position=position,
                    question_text=item.question,
                    answers=item.answers,
                    correct_answer=item.correct_answer,
                    difficulty=DAILY_QUIZ_DIFFICULTY,
                    source=DAILY_QUIZ_SOURCE,
                    question_type=QuestionType.MULTIPLE_CHOICE,
                )

    except IntegrityError as e:
        if Quiz.objects.daily_for(day).exists():
            raise DailyQuizConflict(f"A daily quiz for {day} already exists") from e
        raise GenerationFailure(f"Failed to save the daily quiz: {e}") from e

    except Exception as e:
        raise GenerationFailure(f"Failed to save the daily quiz: {e}") from e

    logger.info(f"Published daily quiz {quiz.pk} for {day} ({category.value})")
    return quiz


def run_daily_quiz_sweep(day=None):
    """
    Make sure ``day`` has a daily quiz. Never raises, the returned state
    tells whether a quiz is published afterwards.
    """
    day = day or timezone.localdate()

    if Quiz.objects.daily_for(day).exists():
        logger.info(f"Daily quiz for {day} already exists, skipping generation")
        return DailyQuizState.PUBLISHED

    state = DailyQuizState.GENERATING
    try:
        category = pick_daily_category()
        logger.info(f"Generating daily quiz for {day} in category {category.value}")
        build_daily_quiz(fetch_quiz_questions(category.label), category, day)

    except DailyQuizConflict:
        logger.info(f"Daily quiz for {day} was published concurrently")
        return DailyQuizState.PUBLISHED

    except Exception as e:
        logger.exception(f"Daily quiz generation for {day} failed in state {state.value}: {e}")
        return DailyQuizState.NO_QUIZ_TODAY

    # Streaks are evaluated once per freshly published quiz
    try:
        sweep_streaks(day)
    except Exception as e:
        logger.exception(f"Streak sweep for {day} failed: {e}")

    return DailyQuizState.PUBLISHED
