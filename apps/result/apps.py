from django.apps import AppConfig


class ResultConfig(AppConfig):
    name = "apps.result"
    label = "result"
