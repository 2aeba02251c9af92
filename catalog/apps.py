from django.apps import AppConfig


class CatalogConfig(AppConfig):
    """Catalog reference data, pricing and translated store records."""
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'catalog'
