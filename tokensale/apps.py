from django.apps import AppConfig


class TokensaleConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'tokensale'
    verbose_name = 'Token Sale Ledger'
