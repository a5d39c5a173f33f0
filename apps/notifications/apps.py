from django.apps import AppConfig


class NotificationsConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.notifications'

    def ready(self):
        # One queue, transport, dispatcher and worker per process
        from .queue import JobQueue
        from .services import NotificationDispatcher
        from .transport import EmailTransport
        from .worker import DeliveryWorker

        self.queue = JobQueue()
        self.transport = EmailTransport()
        self.dispatcher = NotificationDispatcher(self.queue)
        self.worker = DeliveryWorker(self.dispatcher, self.transport)
