"""
Email transport used by the delivery worker.

Wraps Django's mail framework so the worker gets a provider message id back
and tests can swap in a failing transport.
"""

from django.conf import settings
from django.core.mail import EmailMultiAlternatives, get_connection
from django.core.mail.message import make_msgid


class EmailTransport:
    """
    Sends one message per call through the configured EMAIL_BACKEND.

    Connection options left as None fall back to the EMAIL_* settings at
    send time.
    """

    def __init__(self, backend=None, from_email=None, **connection_options):
        self.backend = backend
        self.from_email = from_email
        self.connection_options = connection_options

    def get_connection(self):
        return get_connection(self.backend, fail_silently=False, **self.connection_options)

    def send(self, to, subject, text, html=None):
        """
        Send a message and return its Message-ID.

        Raises whatever the backend raises (SMTPException, OSError, ...);
        the worker turns that into a retry.
        """
        message_id = make_msgid(domain=getattr(settings, 'EMAIL_MESSAGE_ID_DOMAIN', None))
        email = EmailMultiAlternatives(
            subject=subject,
            body=text,
            from_email=self.from_email or getattr(settings, 'DEFAULT_FROM_EMAIL', None),
            to=[to],
            headers={'Message-ID': message_id},
            connection=self.get_connection(),
        )
        if html:
            email.attach_alternative(html, 'text/html')
        email.send()
        return message_id
