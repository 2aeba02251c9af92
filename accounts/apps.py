from django.apps import AppConfig


class AccountsConfig(AppConfig):
    """Firebase identity verification and admin gating."""
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'accounts'
