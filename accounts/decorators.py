from functools import wraps

from django.contrib.auth import get_user_model
from django.core import signing

from accounts.models import UserStatus
from accounts.tokens import read_auth_token
from trivify.exceptions import ActionNotAllowed, AuthenticationFailed

import logging

logger = logging.getLogger("trivify")

User = get_user_model()


def get_bearer_user(request):
    header = request.headers.get("Authorization", "")

    if not header.startswith("Bearer "):
        return None

    try:
        payload = read_auth_token(header[len("Bearer "):].strip())
    except signing.BadSignature:
        logger.info("Rejected invalid or expired bearer token")
        return None

    try:
        user = User.objects.get(pk=payload["uid"])
    except User.DoesNotExist:
        return None

    # Accounts pending deletion must log in again, which reactivates them
    if not user.is_active or user.status == UserStatus.PENDING_DELETE:
        return None

    return user


def token_required(view_func):
    @wraps(view_func)
    def wrapper(request, *args, **kwargs):
        user = get_bearer_user(request)
        if user is None:
            raise AuthenticationFailed("Authentication required")
        request.api_user = user
        return view_func(request, *args, **kwargs)
    return wrapper


def admin_required(view_func):
    @token_required
    @wraps(view_func)
    def wrapper(request, *args, **kwargs):
        if not request.api_user.is_admin:
            raise ActionNotAllowed("Admin role required")
        return view_func(request, *args, **kwargs)
    return wrapper
