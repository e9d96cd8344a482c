from django.contrib import admin
from django.contrib.auth.admin import UserAdmin

from .models import ActivityLog, CustomUser


@admin.register(CustomUser)
class CustomUserAdmin(UserAdmin):
    list_display = ['username', 'email', 'user_type', 'is_active', 'is_superuser']
    list_filter = ['user_type', 'is_active', 'is_superuser']
    fieldsets = UserAdmin.fieldsets + (
        ('LifeLink', {'fields': ('user_type', 'phone')}),
    )


@admin.register(ActivityLog)
class ActivityLogAdmin(admin.ModelAdmin):
    list_display = ['created_at', 'actor', 'action', 'entity_type', 'entity_id']
    list_filter = ['action', 'entity_type']
    search_fields = ['actor__username', 'entity_id']
    readonly_fields = ['actor', 'action', 'entity_type', 'entity_id', 'details', 'created_at']
    ordering = ['-created_at']
