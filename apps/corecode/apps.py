from django.apps import AppConfig


class CorecodeConfig(AppConfig):
    name = "apps.corecode"
    label = "corecode"
