from django.apps import AppConfig


class LedgerConfig(AppConfig):
    name = "src.ledger"
    label = "ledger"
