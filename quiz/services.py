import logging

from django.contrib.auth import get_user_model
from django.core.exceptions import ObjectDoesNotExist
from django.db import transaction
from django.db.models import Avg, Count
from django.utils import timezone
from pydantic import ValidationError

from quiz.models import Question, Quiz, QuizCategory, QuizFavorite, QuizRating, QuizResult
from quiz.schemas import QuizPayload, first_error_message
from quiz.utils import serialize_quiz, start_of_day
from trivify.exceptions import ActionNotAllowed, NotFound, ValidationFailed

logger = logging.getLogger("trivify")


def get_quiz(quiz_id):
    try:
        return Quiz.objects.select_related("creator").get(pk=quiz_id)
    except Quiz.DoesNotExist:
        raise NotFound("Quiz not found")


def grade_answer(user_answer, correct_answer):
    """Case-insensitive comparison of trimmed answers. ``None`` never matches."""
    if user_answer is None or correct_answer is None:
        return False
    return user_answer.strip().lower() == correct_answer.strip().lower()


def check_answer(question_id, user_answer, quiz_id=None):
    questions = Question.objects.all() if quiz_id is None else Question.objects.filter(quiz_id=quiz_id)
    try:
        question = questions.get(pk=question_id)
    except Question.DoesNotExist:
        raise NotFound("Question not found")

    return {
        "correct": grade_answer(user_answer, question.correct_answer),
        "userAnswer": user_answer,
        "correctAnswer": question.correct_answer,
        "question": question.question_text,
        "answers": list(question.answers),
    }


def has_completed_daily_quiz(user_id, day=None):
    day = day or timezone.localdate()
    return QuizResult.objects.filter(user_id=user_id, quiz__date__isnull=False,
                                     played_at__gte=start_of_day(day)).exists()


def get_daily_quiz(day=None):
    day = day or timezone.localdate()
    quiz = Quiz.objects.daily_for(day).select_related("creator").first()

    if quiz is None:
        raise NotFound("The daily quiz is refreshed every day at midnight. Please try again later.")
    if not quiz.questions.exists():
        raise NotFound("The daily quiz has no questions")

    return quiz


def list_quizzes_with_ratings():
    """All quizzes except today's daily quiz, masked, with their rating summary."""
    quizzes = (Quiz.objects.select_related("creator")
               .prefetch_related("questions")
               .exclude(date=timezone.localdate())
               .annotate(average_rating=Avg("ratings__rating"), rating_count=Count("ratings")))

    return [serialize_quiz(quiz, average_rating=quiz.average_rating, rating_count=quiz.rating_count)
            for quiz in quizzes]


def quizzes_of_user(user_id):
    return Quiz.objects.filter(creator_id=user_id).select_related("creator").prefetch_related("questions")


def check_can_modify(quiz, user):
    if quiz.creator_id != user.pk and not user.is_admin:
        raise ActionNotAllowed("Only the creator can change this quiz")


def parse_quiz_payload(data):
    try:
        return QuizPayload.model_validate(data)
    except ValidationError as e:
        raise ValidationFailed(first_error_message(e))


def save_questions(quiz, payload):
    for position, question in enumerate(payload.questions, start=1):
        Question.objects.create(
            quiz=quiz,
            position=position,
            question_text=question.question_text,
            answers=question.answers,
            correct_answer=question.correct_answer,
            difficulty=question.difficulty,
            source=question.source,
            question_type=question.question_type.value,
        )


def create_quiz(user, data):
    payload = parse_quiz_payload(data)

    with transaction.atomic():
        quiz = Quiz.objects.create(
            title=payload.title,
            description=payload.description,
            creator=user,
            categories=[category.value for category in payload.categories],
            is_public=payload.is_public,
        )
        save_questions(quiz, payload)

    logger.info(f"{user.email} created quiz {quiz.pk}")
    return quiz


def update_quiz(quiz_id, user, data):
    quiz = get_quiz(quiz_id)
    check_can_modify(quiz, user)
    payload = parse_quiz_payload(data)

    categories = [category.value for category in payload.categories]
    if quiz.is_daily_quiz:
        categories.insert(0, QuizCategory.DAILY_QUIZ.value)

    with transaction.atomic():
        quiz.title = payload.title
        quiz.description = payload.description
        quiz.categories = categories
        quiz.is_public = payload.is_public
        quiz.save()

        quiz.questions.all().delete()
        save_questions(quiz, payload)

    return quiz


def delete_quiz(quiz_id, user):
    quiz = get_quiz(quiz_id)
    check_can_modify(quiz, user)

    with transaction.atomic():
        QuizFavorite.objects.filter(quiz=quiz).delete()
        QuizRating.objects.filter(quiz=quiz).delete()
        QuizResult.objects.filter(quiz=quiz).delete()
        quiz.questions.all().delete()
        quiz.delete()

    logger.info(f"{user.email} deleted quiz {quiz_id}")


def rate_quiz(quiz_id, user, rating, comment=""):
    quiz = get_quiz(quiz_id)

    if quiz.creator_id == user.pk:
        raise ActionNotAllowed("You cannot rate your own quiz")

    QuizRating.objects.update_or_create(quiz=quiz, user=user, defaults={"rating": rating, "comment": comment})
    return rating


def toggle_favorite(user, quiz_id):
    """Returns ``True`` when the quiz was added and ``False`` when it was removed."""
    quiz = get_quiz(quiz_id)

    deleted, _ = QuizFavorite.objects.filter(user=user, quiz=quiz).delete()
    if deleted:
        return False

    QuizFavorite.objects.create(user=user, quiz=quiz)
    return True


def favorite_quizzes(user):
    return [favorite.quiz for favorite in
            QuizFavorite.objects.filter(user=user).select_related("quiz", "quiz__creator").order_by("-created_at")]


def quiz_history(user):
    results = QuizResult.objects.filter(user=user).select_related("quiz").order_by("-played_at")

    history = []
    for result in results:
        quiz = result.quiz
        categories = [category for category in quiz.categories if category != QuizCategory.DAILY_QUIZ]
        history.append({
            "id": result.pk,
            "quizId": quiz.pk,
            "quizTitle": quiz.title,
            "score": result.score,
            "maxPossibleScore": result.max_possible_score,
            "playedAt": result.played_at.isoformat(),
            "category": categories[0] if categories else None,
            "isDailyQuiz": quiz.is_daily_quiz,
        })
    return history


def save_result(user_id, quiz_id, score, max_possible_score):
    quiz = get_quiz(quiz_id)

    try:
        user = get_user_model().objects.get(pk=user_id)
    except ObjectDoesNotExist:
        raise NotFound("User not found")

    if score < 0 or max_possible_score < 0 or score > max_possible_score:
        raise ValidationFailed("Score must be between 0 and the maximum possible score")

    return QuizResult.objects.create(user=user, quiz=quiz, score=score, max_possible_score=max_possible_score)


def results_of_user(user_id):
    return QuizResult.objects.filter(user_id=user_id).select_related("quiz").order_by("-played_at")


def results_of_quiz(quiz_id):
    return QuizResult.objects.filter(quiz_id=quiz_id).select_related("quiz").order_by("-played_at")


def ranked_scores():
    """
    Sum of each player's first result per quiz, best first. Quizzes a player
    created do not count towards their score.
    """
    totals = {}
    names = {}
    seen = set()

    results = QuizResult.objects.select_related("user", "quiz").order_by("id")
    for result in results:
        if result.quiz.creator_id == result.user_id:
            continue
        key = (result.user_id, result.quiz_id)
        if key in seen:
            continue
        seen.add(key)
        totals[result.user_id] = totals.get(result.user_id, 0) + result.score
        names[result.user_id] = result.user.username

    ordered = sorted(totals.items(), key=lambda item: item[1], reverse=True)

    return [{"userId": user_id, "username": names[user_id], "score": score, "rank": rank}
            for rank, (user_id, score) in enumerate(ordered, start=1)]


def top_scores(limit=10):
    return ranked_scores()[:limit]


def user_score_and_rank(user_id):
    for entry in ranked_scores():
        if entry["userId"] == user_id:
            return entry

    return {"userId": user_id, "username": None, "score": 0, "rank": -1}


def list_all_quizzes():
    return Quiz.objects.select_related("creator").prefetch_related("questions")
