from django.apps import AppConfig


class PosBackendConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "pos_backend"
