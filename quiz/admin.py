from django.contrib import admin
from django.db.models import Avg, Count

from quiz.models import Question, Quiz, QuizFavorite, QuizRating, QuizResult


class QuestionInline(admin.TabularInline):
    model = Question
    extra = 0


class QuizAdmin(admin.ModelAdmin):
    list_display = ("title", "creator", "date", "is_public", "rating_count", "average_rating")
    list_filter = ("is_public", "date")
    search_fields = ("title", "creator__username", "creator__email")
    inlines = [QuestionInline]

    def get_queryset(self, request):
        return super().get_queryset(request).annotate(_rating_count=Count("ratings"),
                                                      _average_rating=Avg("ratings__rating"))

    @admin.display(ordering="_rating_count")
    def rating_count(self, obj):
        return obj._rating_count

    @admin.display(ordering="_average_rating")
    def average_rating(self, obj):
        return round(obj._average_rating, 2) if obj._average_rating is not None else None


class QuizResultAdmin(admin.ModelAdmin):
    list_display = ("user", "quiz", "score", "max_possible_score", "played_at")
    list_filter = ("played_at",)


admin.site.register(Quiz, QuizAdmin)
admin.site.register(QuizResult, QuizResultAdmin)
admin.site.register(QuizRating)
admin.site.register(QuizFavorite)
