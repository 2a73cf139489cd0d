from django.contrib.auth.backends import BaseBackend
from django.contrib.auth import get_user_model

User = get_user_model()

class CustomBackend(BaseBackend):
    """
    Authenticate with email and password or username and password
    """

    def authenticate(self, request, username=None, password=None, **kwargs):

        user = find_login_candidate(username)

        if user and user.check_password(password) and self.user_can_authenticate(user):
            return user

        return None


    def get_user(self, user_id):
        try:
            user = User.objects.get(pk=user_id)
        except User.DoesNotExist:
            return None

        return user if self.user_can_authenticate(user) else None


    def user_can_authenticate(self, user):
        # Unverified and blocked accounts are stored with is_active=False
        return getattr(user, 'is_active', False)


def find_login_candidate(login):
    if not login:
        return None

    try:
        return User.objects.get(email__iexact=login)
    except User.DoesNotExist:
        try:
            return User.objects.get(username=login)
        except User.DoesNotExist:
            return None
