from django.contrib import admin

from .models import EnrollmentSession


@admin.register(EnrollmentSession)
class EnrollmentSessionAdmin(admin.ModelAdmin):
    list_display = ('id', 'step', 'calculated_price', 'is_submitting', 'registration_id', 'expires_at', 'updated_at')
    search_fields = ('id', 'registration_id', 'firebase_uid')
    list_filter = ('step', 'is_submitting')
    readonly_fields = ('form_data_encrypted', 'registration', 'last_verdict')
