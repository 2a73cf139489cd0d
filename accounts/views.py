import logging

from django.conf import settings
from django.contrib.auth import get_user_model
from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_http_methods, require_POST

from accounts import admin_services, services
from accounts.decorators import admin_required, token_required
from accounts.forms import (AdminUserForm, AdminUserUpdateForm, LoginForm, NewPasswordForm, PasswordChangeForm,
                            PasswordResetRequestForm, ProfileForm, RegisterForm)
from accounts.models import UserRole, UserStatus
from accounts.utils import serialize_user
from quiz import services as quiz_services
from quiz.utils import serialize_quiz
from trivify.exceptions import ActionNotAllowed, ValidationFailed
from trivify.http import read_json, validated

logger = logging.getLogger("trivify")


# Authentication

@csrf_exempt
@require_POST
def register(request):
    data = validated(RegisterForm(read_json(request)))
    message = services.register_user(data["name"], data["email"], data["password"], data["dailyQuizReminder"])
    return JsonResponse({"message": message})


@csrf_exempt
@require_POST
def verify_email(request, uidb64, token):
    services.verify_email(uidb64, token)
    return JsonResponse({"message": "E-mail address verified, you can log in now."})


@csrf_exempt
@require_POST
def login(request):
    data = validated(LoginForm(read_json(request)))
    token, user = services.login_user(data["email"], data["password"])
    return JsonResponse({"token": token, "user": serialize_user(user)})


@require_GET
@token_required
def me(request):
    return JsonResponse(serialize_user(request.api_user))


# Password reset

@csrf_exempt
@require_POST
def reset_password_request(request):
    data = validated(PasswordResetRequestForm(read_json(request)))
    services.forgot_password(data["email"])
    return JsonResponse({"message": "We sent you an e-mail with a link to reset your password."})


@csrf_exempt
@require_POST
def reset_password(request, uidb64, token):
    data = validated(NewPasswordForm(read_json(request)))
    services.reset_password(uidb64, token, data["newPassword"])
    return JsonResponse({"message": "Your password has been changed."})


# Profile

@csrf_exempt
@require_http_methods(["GET", "PUT", "DELETE"])
@token_required
def profile(request):
    user = request.api_user

    if request.method == "PUT":
        data = validated(ProfileForm(read_json(request)))
        user = services.update_profile(user, data["name"], data["email"], data["dailyQuizReminder"])

    elif request.method == "DELETE":
        services.request_account_deletion(user)
        days = settings.ACCOUNT_DELETION_GRACE_DAYS
        return JsonResponse({"message": f"Your account will be deleted in {days} days unless you log in again."})

    return JsonResponse(serialize_user(user))


@csrf_exempt
@require_http_methods(["PUT"])
@token_required
def change_password(request):
    data = validated(PasswordChangeForm(read_json(request)))
    services.update_password(request.api_user, data["currentPassword"], data["newPassword"])
    return JsonResponse({"message": "Your password has been changed."})


@csrf_exempt
@require_http_methods(["PUT"])
@token_required
def daily_quiz_reminder(request, user_id):
    if request.api_user.pk != user_id and not request.api_user.is_admin:
        raise ActionNotAllowed("You can only change your own reminder")

    reminder = request.GET.get("reminder", "").lower()
    if reminder not in ("true", "false"):
        raise ValidationFailed("reminder must be true or false")

    user = services.update_daily_quiz_reminder(user_id, reminder == "true")
    return JsonResponse(serialize_user(user))


@require_GET
@token_required
def favorites(request):
    quizzes = quiz_services.favorite_quizzes(request.api_user)
    return JsonResponse([serialize_quiz(quiz) for quiz in quizzes], safe=False)


@csrf_exempt
@require_POST
@token_required
def toggle_favorite(request, quiz_id):
    favorited = quiz_services.toggle_favorite(request.api_user, quiz_id)
    return JsonResponse({"favorited": favorited})


@require_GET
@token_required
def streak(request):
    return JsonResponse({"dailyStreak": request.api_user.daily_streak})


@require_GET
@token_required
def quiz_history(request):
    return JsonResponse(quiz_services.quiz_history(request.api_user), safe=False)


@csrf_exempt
@require_POST
@token_required
def daily_quiz_completed(request):
    daily_streak = services.increment_daily_streak(request.api_user)
    return JsonResponse({"dailyStreak": daily_streak})


# Administration

@require_GET
@admin_required
def admin_quizzes(request):
    quizzes = quiz_services.list_all_quizzes()
    return JsonResponse([serialize_quiz(quiz, mask=False) for quiz in quizzes], safe=False)


@require_GET
@admin_required
def admin_users(request):
    users = get_user_model().objects.order_by("pk")
    return JsonResponse([serialize_user(user) for user in users], safe=False)


@require_GET
@admin_required
def admin_roles(request):
    return JsonResponse(UserRole.values, safe=False)


@require_GET
@admin_required
def admin_states(request):
    return JsonResponse(UserStatus.values, safe=False)


@csrf_exempt
@require_POST
@admin_required
def admin_create_user(request):
    data = validated(AdminUserForm(read_json(request)))
    user = admin_services.create_user(data)
    return JsonResponse(serialize_user(user), status=201)


@csrf_exempt
@require_http_methods(["PUT"])
@admin_required
def admin_update_user(request, user_id):
    raw = read_json(request)
    data = validated(AdminUserUpdateForm(raw))
    user = admin_services.update_user(user_id, data, provided=raw.keys())
    return JsonResponse(serialize_user(user))


@csrf_exempt
@require_http_methods(["DELETE"])
@admin_required
def admin_delete_user(request, user_id):
    admin_services.delete_user(user_id)
    return JsonResponse({"message": "User deleted"})
