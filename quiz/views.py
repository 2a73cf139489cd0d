import logging

from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_http_methods, require_POST

from accounts.decorators import get_bearer_user, token_required
from quiz import services
from quiz.forms import QuizResultForm, RatingForm, SubmitAnswerForm
from quiz.models import QuizCategory
from quiz.utils import serialize_quiz, serialize_result
from trivify.exceptions import ActionNotAllowed, AuthenticationFailed, ValidationFailed
from trivify.http import read_json, validated

logger = logging.getLogger("trivify")


@require_GET
def quiz_list(request):
    return JsonResponse(services.list_quizzes_with_ratings(), safe=False)


@require_GET
def daily_quiz(request):
    return JsonResponse(serialize_quiz(services.get_daily_quiz()))


@require_GET
def daily_completion_status(request):
    try:
        user_id = int(request.GET["userId"])
    except (KeyError, ValueError):
        raise ValidationFailed("userId is required")

    return JsonResponse({"completed": services.has_completed_daily_quiz(user_id)})


@csrf_exempt
@require_POST
@token_required
def create_quiz(request):
    quiz = services.create_quiz(request.api_user, read_json(request))
    return JsonResponse(serialize_quiz(quiz, mask=False), status=201)


@csrf_exempt
@require_http_methods(["GET", "PUT", "DELETE"])
def quiz_detail(request, quiz_id):
    if request.method == "GET":
        return JsonResponse(serialize_quiz(services.get_quiz(quiz_id)))

    user = get_bearer_user(request)
    if user is None:
        raise AuthenticationFailed("Authentication required")

    if request.method == "PUT":
        quiz = services.update_quiz(quiz_id, user, read_json(request))
        return JsonResponse(serialize_quiz(quiz, mask=False))

    services.delete_quiz(quiz_id, user)
    return JsonResponse({"message": "Quiz deleted"})


@require_GET
@token_required
def quiz_to_edit(request, quiz_id):
    quiz = services.get_quiz(quiz_id)
    services.check_can_modify(quiz, request.api_user)
    return JsonResponse(serialize_quiz(quiz, mask=False))


@csrf_exempt
@require_POST
def submit_answer(request, quiz_id):
    data = read_json(request)
    question_id = validated(SubmitAnswerForm(data))["questionId"]

    answer = data.get("answer")
    if answer is not None and not isinstance(answer, str):
        raise ValidationFailed("answer must be a string")

    return JsonResponse(services.check_answer(question_id, answer, quiz_id=quiz_id))


@require_GET
def user_quizzes(request, user_id):
    return JsonResponse([serialize_quiz(quiz) for quiz in services.quizzes_of_user(user_id)], safe=False)


@require_GET
def categories(request):
    return JsonResponse(QuizCategory.values, safe=False)


@require_GET
def category_values(request):
    return JsonResponse(QuizCategory.labels, safe=False)


@csrf_exempt
@require_POST
@token_required
def rate_quiz(request, quiz_id):
    data = validated(RatingForm(read_json(request)))
    rating = services.rate_quiz(quiz_id, request.api_user, data["rating"], data["comment"])
    return JsonResponse({"rating": rating})


# Results and scores

@csrf_exempt
@require_POST
@token_required
def save_result(request):
    data = validated(QuizResultForm(read_json(request)))

    if data["userId"] != request.api_user.pk and not request.api_user.is_admin:
        raise ActionNotAllowed("You can only save your own results")

    result = services.save_result(data["userId"], data["quizId"], data["score"], data["maxPossibleScore"])
    return JsonResponse(serialize_result(result), status=201)


@require_GET
def user_results(request, user_id):
    return JsonResponse([serialize_result(result) for result in services.results_of_user(user_id)], safe=False)


@require_GET
def quiz_results(request, quiz_id):
    return JsonResponse([serialize_result(result) for result in services.results_of_quiz(quiz_id)], safe=False)


@require_GET
def top_scores(request):
    return JsonResponse(services.top_scores(), safe=False)


@require_GET
def user_score(request, user_id):
    return JsonResponse(services.user_score_and_rank(user_id))
