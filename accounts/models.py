from django.contrib.auth.models import AbstractUser
from django.core.serializers.json import DjangoJSONEncoder
from django.db import models


class CustomUser(AbstractUser):
    USER_TYPE_CHOICES = (
        ('member', 'Member'),
        ('super_admin', 'Super Admin'),
    )

    user_type = models.CharField(
        max_length=15,
        choices=USER_TYPE_CHOICES,
        default='member'
    )
    email = models.EmailField(unique=True)
    phone = models.CharField(max_length=15, blank=True)

    def __str__(self):
        return f"{self.username} ({self.user_type})"

    @property
    def is_lifelink_admin(self) -> bool:
        return self.is_superuser or self.user_type == 'super_admin'

    @property
    def display_name(self) -> str:
        return self.get_full_name() or self.username


class ActivityLog(models.Model):
    """Audit trail: who performed which mutating action, and when"""
    actor = models.ForeignKey(
        'accounts.CustomUser',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='activity_logs'
    )
    action = models.CharField(max_length=64, db_index=True)
    entity_type = models.CharField(max_length=64, blank=True)
    entity_id = models.CharField(max_length=64, blank=True, db_index=True)
    details = models.JSONField(default=dict, blank=True, encoder=DjangoJSONEncoder)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    def __str__(self):
        who = self.actor.username if self.actor_id else 'system'
        return f"{who} {self.action} {self.entity_type}#{self.entity_id}"

    class Meta:
        ordering = ['-created_at', '-id']
        verbose_name = 'Activity Log'
        verbose_name_plural = 'Activity Logs'
