from django.conf import settings
from django.db import models


class Notification(models.Model):
    """In-app notification; one row per alert shown to a user"""
    TYPE_CHOICES = [
        ('service_assigned', 'Servis dodeljen'),
        ('service_created', 'Novi servis'),
        ('service_status_changed', 'Promena statusa'),
        ('service_completed', 'Servis završen'),
        ('parts_ordered', 'Poručen deo'),
        ('parts_arrived', 'Stigao deo'),
        ('general', 'Obaveštenje'),
    ]

    PRIORITY_CHOICES = [
        ('low', 'Nizak'),
        ('normal', 'Normalan'),
        ('high', 'Visok'),
        ('urgent', 'Hitno'),
    ]

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='notifications')
    type = models.CharField(max_length=50, choices=TYPE_CHOICES, default='general')
    title = models.CharField(max_length=255)
    message = models.TextField()
    related_service = models.ForeignKey(
        'services.Service', on_delete=models.SET_NULL, null=True, blank=True, related_name='notifications'
    )
    related_user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='+'
    )
    priority = models.CharField(max_length=10, choices=PRIORITY_CHOICES, default='normal')
    is_read = models.BooleanField(default=False)
    read_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'notifications'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['user', 'is_read'], name='idx_notif_user_read'),
            models.Index(fields=['-created_at'], name='idx_notif_created'),
        ]

    def __str__(self):
        return self.title


class PushSubscription(models.Model):
    """Browser push endpoint of a user; a new subscription replaces the old one"""
    user = models.OneToOneField(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='push_subscription')
    endpoint = models.TextField()
    keys = models.JSONField(default=dict, help_text="p256dh and auth keys")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'push_subscriptions'

    def __str__(self):
        return f"Push subscription of {self.user}"

    def as_subscription_info(self):
        return {'endpoint': self.endpoint, 'keys': self.keys}
