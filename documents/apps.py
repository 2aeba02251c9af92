from django.apps import AppConfig


class DocumentsConfig(AppConfig):
    """Document store access (Firestore or in-memory) and seeding."""
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'documents'
