from django.urls import path

from . import views

urlpatterns = [
    path("auth/register", views.register, name="register"),
    path("auth/verify-email/<uidb64>/<token>", views.verify_email, name="verify_email"),
    path("auth/login", views.login, name="login"),
    path("auth/me", views.me, name="me"),

    path("users/reset-password-request", views.reset_password_request, name="reset_password_request"),
    path("users/reset-password/<uidb64>/<token>", views.reset_password, name="reset_password"),
    path("users/<int:user_id>/daily-quiz-reminder", views.daily_quiz_reminder, name="daily_quiz_reminder"),
    path("users/profile", views.profile, name="profile"),
    path("users/profile/password", views.change_password, name="change_password"),
    path("users/favorites", views.favorites, name="favorites"),
    path("users/quizzes/<int:quiz_id>/favorite", views.toggle_favorite, name="toggle_favorite"),
    path("users/streak", views.streak, name="streak"),
    path("users/quiz-history", views.quiz_history, name="quiz_history"),
    path("users/daily-quiz/completed", views.daily_quiz_completed, name="daily_quiz_completed"),

    path("admin/quizzes", views.admin_quizzes, name="admin_quizzes"),
    path("admin/users", views.admin_users, name="admin_users"),
    path("admin/users/roles", views.admin_roles, name="admin_roles"),
    path("admin/users/states", views.admin_states, name="admin_states"),
    path("admin/users/create", views.admin_create_user, name="admin_create_user"),
    path("admin/users/update/<int:user_id>", views.admin_update_user, name="admin_update_user"),
    path("admin/users/delete/<int:user_id>", views.admin_delete_user, name="admin_delete_user"),
]
