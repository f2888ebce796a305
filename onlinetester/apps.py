from django.apps import AppConfig


class OnlineTesterConfig(AppConfig):
    name = 'onlinetester'
    verbose_name = 'Template Online Tester'

    def ready(self):
        # Build the shared lookup tables before the first request arrives.
        from .services.setting_values import get_setting_values
        get_setting_values()
