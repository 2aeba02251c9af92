from django.apps import AppConfig


class DashboardConfig(AppConfig):
    """Admin dashboard API over the document store."""
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'dashboard'
