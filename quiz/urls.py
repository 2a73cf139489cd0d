from django.urls import path

from . import views

urlpatterns = [
    path("", views.create_quiz, name="create_quiz"),
    path("quizzes", views.quiz_list, name="quiz_list"),
    path("quizzes/daily", views.daily_quiz, name="daily_quiz"),
    path("quizzes/<int:quiz_id>/rate", views.rate_quiz, name="rate_quiz"),
    path("daily/completion-status", views.daily_completion_status, name="daily_completion_status"),
    path("<int:quiz_id>", views.quiz_detail, name="quiz_detail"),
    path("<int:quiz_id>/submit", views.submit_answer, name="submit_answer"),
    path("toEdit/<int:quiz_id>", views.quiz_to_edit, name="quiz_to_edit"),
    path("user/<int:user_id>", views.user_quizzes, name="user_quizzes"),
    path("categories", views.categories, name="categories"),
    path("categories/values", views.category_values, name="category_values"),

    path("quiz-results", views.save_result, name="save_result"),
    path("quiz-results/user/<int:user_id>", views.user_results, name="user_results"),
    path("quiz-results/quiz/<int:quiz_id>", views.quiz_results, name="quiz_results"),
    path("quiz-results/scores/top", views.top_scores, name="top_scores"),
    path("quiz-results/scores/user/<int:user_id>", views.user_score, name="user_score"),
]
