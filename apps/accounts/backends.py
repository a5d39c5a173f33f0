"""
Authentication backend for email-based login.
"""

from django.contrib.auth.backends import ModelBackend
from django.contrib.auth import get_user_model

User = get_user_model()


class EmailAuthBackend(ModelBackend):
    """
    Authenticate using email address instead of username.

    Email matching is case-insensitive; inactive users are rejected.
    """

    def authenticate(self, request, username=None, password=None, **kwargs):
        # Allow email to be passed as either 'username' or 'email'
        email = kwargs.get('email') or username

        if email is None or password is None:
            return None

        email = email.lower().strip()

        try:
            user = User.objects.get(email__iexact=email)
        except User.DoesNotExist:
            # Run the default password hasher to mitigate timing attacks
            User().set_password(password)
            return None

        if user.check_password(password) and self.user_can_authenticate(user):
            return user
        return None
