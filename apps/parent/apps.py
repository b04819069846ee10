from django.apps import AppConfig


class ParentConfig(AppConfig):
    name = "apps.parent"
    label = "parent"
