from django.apps import AppConfig


class ShopConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.shop"
    label = "shop"

    def ready(self):
        from . import events  # noqa: F401  (connects the cache-eviction receiver)
