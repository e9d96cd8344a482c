# requisitions/admin.py
from django.contrib import admin
from django.utils import timezone
from django.utils.html import format_html

from requisitions.lifecycle import expire_stale_requisitions, is_effectively_active
from .models import BloodRequisition


@admin.register(BloodRequisition)
class BloodRequisitionAdmin(admin.ModelAdmin):
    list_display = [
        'id',
        'patient_name',
        'hospital_name',
        'required_blood_group',
        'urgency_level',
        'status',
        'open_display',
        'response_summary',
        'expires_at',
    ]
    list_filter = ['status', 'urgency_level', 'required_blood_group', 'created_at']
    search_fields = ['patient_name', 'hospital_name', 'location', 'requester__username']
    readonly_fields = ['expires_at', 'activated_at', 'reuse_count', 'created_at', 'updated_at']

    fieldsets = (
        ('Requisition Information', {
            'fields': ('requester', 'patient_name', 'hospital_name', 'contact_number', 'alternate_number',
                       'required_blood_group', 'units_needed', 'urgency_level', 'medical_condition',
                       'location', 'additional_notes', 'allow_contact_reveal')
        }),
        ('Lifecycle', {
            'fields': ('status', 'status_notes', 'required_by_date', 'expires_at', 'activated_at', 'reuse_count')
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )

    actions = ['expire_stale']

    @admin.display(boolean=True, description='Open')
    def open_display(self, obj):
        return is_effectively_active(obj)

    @admin.display(description='Responses')
    def response_summary(self, obj):
        total = obj.responses.count()
        willing = obj.responses.filter(response='WILLING').count()
        notified = obj.donor_notifications.count()
        return format_html(
            '<span style="color: blue;">Notified: {}</span> | '
            '<span style="color: green;">Willing: {}</span> | '
            'Total: {}',
            notified, willing, total
        )

    @admin.action(description='Expire all stale requisitions now')
    def expire_stale(self, request, queryset):
        expired = expire_stale_requisitions(timezone.now())
        self.message_user(request, f'{expired} requisition(s) marked as expired.')
