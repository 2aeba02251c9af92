from django.apps import AppConfig


class EnrollmentConfig(AppConfig):
    """Django AppConfig for the enrollment wizard."""
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'enrollment'
