from datetime import datetime, time

from django.utils import timezone


def start_of_day(day):
    return timezone.make_aware(datetime.combine(day, time.min))


def serialize_creator(user, mask=True):
    data = {"id": user.pk, "name": user.username}
    if not mask:
        data["email"] = user.email
    return data


def serialize_question(question, mask=True):
    return {
        "id": question.pk,
        "questionText": question.question_text,
        "answers": list(question.answers),
        # Played quizzes never carry the solution
        "correctAnswer": "" if mask else question.correct_answer,
        "difficulty": question.difficulty,
        "source": question.source,
        "questionType": question.question_type,
    }


def serialize_quiz(quiz, mask=True, average_rating=None, rating_count=None):
    data = {
        "id": quiz.pk,
        "title": quiz.title,
        "description": quiz.description,
        "creator": serialize_creator(quiz.creator, mask=mask),
        "categories": list(quiz.categories),
        "isPublic": quiz.is_public,
        "date": quiz.date.isoformat() if quiz.date else None,
        "createdAt": quiz.created_at.isoformat(),
        "updatedAt": quiz.updated_at.isoformat(),
        "questions": [serialize_question(question, mask=mask) for question in quiz.questions.all()],
    }

    if average_rating is not None or rating_count is not None:
        data["averageRating"] = average_rating or 0.0
        data["ratingCount"] = rating_count or 0

    return data


def serialize_result(result):
    return {
        "id": result.pk,
        "userId": result.user_id,
        "quizId": result.quiz_id,
        "quizTitle": result.quiz.title,
        "score": result.score,
        "maxPossibleScore": result.max_possible_score,
        "playedAt": result.played_at.isoformat(),
    }
