from django.contrib.auth.models import AbstractUser, UserManager
from django.db import models


class UserStatus(models.TextChoices):
    PENDING_VERIFICATION = "PENDING_VERIFICATION", "Pending verification"
    ACTIVE = "ACTIVE", "Active"
    PENDING_DELETE = "PENDING_DELETE", "Pending delete"
    BLOCKED = "BLOCKED", "Blocked"


class UserRole(models.TextChoices):
    USER = "USER", "User"
    ADMIN = "ADMIN", "Admin"


class TrivifyUserManager(UserManager):

    def create_superuser(self, username, email=None, password=None, **extra_fields):
        extra_fields.setdefault("status", UserStatus.ACTIVE)
        extra_fields.setdefault("role", UserRole.ADMIN)
        return super().create_superuser(username, email, password, **extra_fields)


class User(AbstractUser):
    """
    Player account. ``username`` is the public display name, ``email`` is
    the login identifier.
    """
    email = models.EmailField(unique=True)
    status = models.CharField(max_length=32, choices=UserStatus.choices, default=UserStatus.PENDING_VERIFICATION)
    role = models.CharField(max_length=16, choices=UserRole.choices, default=UserRole.USER)
    daily_quiz_reminder = models.BooleanField(default=False)
    daily_streak = models.PositiveIntegerField(default=0)
    last_daily_quiz_played = models.DateTimeField(null=True, blank=True)
    # Written only by the streak increment, admin streak edits leave it alone
    streak_counted_on = models.DateField(null=True, blank=True)
    deletion_requested_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = TrivifyUserManager()

    def __str__(self):
        return self.email

    @property
    def is_admin(self):
        return self.role == UserRole.ADMIN

    def save(self, *args, **kwargs):
        # Unverified and blocked accounts cannot log in
        self.is_active = self.status not in (UserStatus.PENDING_VERIFICATION, UserStatus.BLOCKED)
        super().save(*args, **kwargs)
