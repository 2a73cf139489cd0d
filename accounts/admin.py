from django.contrib import admin
from django.contrib.auth.admin import UserAdmin

from accounts.models import User


class TrivifyUserAdmin(UserAdmin):
    list_display = ("username", "email", "status", "role", "daily_streak", "daily_quiz_reminder")
    list_filter = ("status", "role", "daily_quiz_reminder")
    fieldsets = UserAdmin.fieldsets + (
        ("Trivify", {"fields": ("status", "role", "daily_quiz_reminder", "daily_streak",
                                "last_daily_quiz_played", "streak_counted_on", "deletion_requested_at")}),
    )


admin.site.register(User, TrivifyUserAdmin)
