from django.conf import settings
from django.db import models


class QuizCategory(models.TextChoices):
    DAILY_QUIZ = "DAILY_QUIZ", "Daily quiz"
    GENERAL_KNOWLEDGE = "GENERAL_KNOWLEDGE", "General knowledge"
    SCIENCE = "SCIENCE", "Science"
    HISTORY = "HISTORY", "History"
    GEOGRAPHY = "GEOGRAPHY", "Geography"
    ENTERTAINMENT = "ENTERTAINMENT", "Entertainment"
    ART_AND_LITERATURE = "ART_AND_LITERATURE", "Art and literature"
    SPORTS = "SPORTS", "Sports"
    MUSIC = "MUSIC", "Music"
    FILM_AND_TELEVISION = "FILM_AND_TELEVISION", "Film and television"
    TECHNOLOGY = "TECHNOLOGY", "Technology"


class QuestionType(models.TextChoices):
    MULTIPLE_CHOICE = "MULTIPLE_CHOICE", "Multiple choice"
    TEXT_INPUT = "TEXT_INPUT", "Free text"
    TRUE_FALSE = "TRUE_FALSE", "True / false"


class QuizQuerySet(models.QuerySet):

    def daily(self):
        # Only daily quizzes carry a date
        return self.filter(date__isnull=False)

    def daily_for(self, day):
        return self.filter(date=day)


class Quiz(models.Model):
    title = models.CharField(max_length=255)
    description = models.CharField(max_length=1000, blank=True, default="")
    creator = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="quizzes")
    categories = models.JSONField(default=list)
    is_public = models.BooleanField(default=True)
    # Set only on daily quizzes; unique so a second daily quiz for the same day fails at insert
    date = models.DateField(null=True, blank=True, unique=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = QuizQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return self.title

    @property
    def is_daily_quiz(self):
        return QuizCategory.DAILY_QUIZ in self.categories


class Question(models.Model):
    quiz = models.ForeignKey(Quiz, on_delete=models.CASCADE, related_name="questions")
    position = models.PositiveIntegerField(default=0)
    question_text = models.CharField(max_length=1000)
    answers = models.JSONField(default=list, blank=True)
    correct_answer = models.CharField(max_length=500)
    difficulty = models.PositiveSmallIntegerField(default=1)
    source = models.CharField(max_length=255, blank=True, default="")
    question_type = models.CharField(max_length=32, choices=QuestionType.choices, default=QuestionType.MULTIPLE_CHOICE)

    class Meta:
        ordering = ["position", "id"]

    def __str__(self):
        return self.question_text


class QuizResult(models.Model):
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="quiz_results")
    quiz = models.ForeignKey(Quiz, on_delete=models.CASCADE, related_name="results")
    score = models.IntegerField()
    max_possible_score = models.IntegerField()
    played_at = models.DateTimeField(auto_now_add=True)


class QuizRating(models.Model):
    quiz = models.ForeignKey(Quiz, on_delete=models.CASCADE, related_name="ratings")
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="quiz_ratings")
    rating = models.PositiveSmallIntegerField()
    comment = models.CharField(max_length=1000, blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["quiz", "user"], name="unique_rating_per_user_and_quiz"),
            models.CheckConstraint(condition=models.Q(rating__gte=1, rating__lte=5), name="rating_between_1_and_5"),
        ]


class QuizFavorite(models.Model):
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="favorites")
    quiz = models.ForeignKey(Quiz, on_delete=models.CASCADE, related_name="favorites")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["user", "quiz"], name="unique_favorite_per_user_and_quiz")
        ]
