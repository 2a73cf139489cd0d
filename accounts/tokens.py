from django.conf import settings
from django.contrib.auth.tokens import PasswordResetTokenGenerator
from django.core import signing


class AccountActivationTokenGenerator(PasswordResetTokenGenerator):
    """Single-use link token for e-mail verification and password resets."""

    def _make_hash_value(self, user, timestamp):
        return f"{user.pk}{user.password}{user.status}{timestamp}"


account_activation_token = AccountActivationTokenGenerator()


AUTH_TOKEN_SALT = "accounts.bearer"


def issue_auth_token(user):
    return signing.dumps({"uid": user.pk, "email": user.email}, salt=AUTH_TOKEN_SALT, compress=True)


def read_auth_token(token):
    """Return the payload of a bearer token or raise ``signing.BadSignature``."""
    return signing.loads(token, salt=AUTH_TOKEN_SALT, max_age=settings.AUTH_TOKEN_MAX_AGE)
