from django.contrib import admin

from .models import DonationRecord, DonorNotification, DonorProfile, DonorResponse


@admin.register(DonorProfile)
class DonorProfileAdmin(admin.ModelAdmin):
    list_display   = ['user', 'blood_group', 'is_blood_donor', 'total_donations', 'city', 'can_donate_display']
    list_filter    = ['blood_group', 'is_blood_donor', 'show_phone']
    search_fields  = ['user__username', 'user__email', 'city', 'state']
    ordering       = ['-total_donations']
    readonly_fields = ['total_donations', 'total_units_donated', 'last_donation_date', 'created_at', 'updated_at']

    fieldsets = (
        ('Donor', {
            'fields': ('user', 'blood_group', 'is_blood_donor', 'show_phone')
        }),
        ('Location', {
            'fields': ('city', 'state')
        }),
        ('Donation Stats', {
            'fields': ('total_donations', 'total_units_donated', 'last_donation_date')
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',),
        }),
    )

    @admin.display(boolean=True, description='Can Donate Now')
    def can_donate_display(self, obj):
        return obj.can_donate


@admin.register(DonorNotification)
class DonorNotificationAdmin(admin.ModelAdmin):
    list_display  = ['donor', 'requisition', 'status', 'priority', 'created_at', 'delivered_at', 'read_at']
    list_filter   = ['status', 'priority']
    search_fields = ['donor__user__username', 'requisition__hospital_name', 'requisition__patient_name']
    ordering      = ['-created_at']
    readonly_fields = ['created_at', 'delivered_at', 'read_at', 'last_error']


@admin.register(DonorResponse)
class DonorResponseAdmin(admin.ModelAdmin):
    list_display  = ['donor', 'requisition', 'response', 'is_contact_revealed', 'responded_at']
    list_filter   = ['response', 'is_contact_revealed']
    search_fields = ['donor__user__username', 'requisition__patient_name']
    ordering      = ['-responded_at']
    readonly_fields = ['donor', 'requisition', 'response', 'contact_phone', 'is_contact_revealed', 'responded_at']


@admin.register(DonationRecord)
class DonationRecordAdmin(admin.ModelAdmin):
    list_display  = ['donor', 'donation_date', 'location', 'units']
    list_filter   = ['donation_date']
    search_fields = ['donor__user__username', 'location']
    ordering      = ['-donation_date']
    readonly_fields = ['created_at']
