from __future__ import annotations
from typing import Any


class ApplicationError(Exception):
    def __init__(self, message, extra=None):
        super().__init__(message)
        self.message = message
        self.extra = extra or {}


class ConfigurationError(ApplicationError):
    """Configuration invalide (fatale au démarrage)"""
    pass


class AlreadyExists(ApplicationError):
    """Identité ou enregistrement de custody déjà présent"""
    pass


class NotFound(ApplicationError):
    """Ressource non trouvée"""
    pass


class IntegrityError(ApplicationError):
    """Échec de vérification du tag d'authentification"""
    pass


class SecretStoreUnavailable(ApplicationError):
    pass


class PreconditionFailed(ApplicationError):
    def __init__(self, message, reason: str | None = None, extra: dict[str, Any] | None = None):
        super().__init__(message, extra=extra)
        self.reason = reason


class LedgerUnavailable(ApplicationError):
    """Erreur réseau / timeout, peut être rejouée par l'appelant"""
    pass


class LedgerInternalError(ApplicationError):
    pass


class UnknownLedgerStatus(ApplicationError):
    def __init__(self, value, extra: dict[str, Any] | None = None):
        super().__init__(f"Unknown ledger status code: {value!r}", extra=extra)
        self.value = value


class LedgerTxPending(ApplicationError):
    """Transaction soumise mais finalité non observée: ne pas rejouer"""

    def __init__(self, message, tx_hash: str, extra: dict[str, Any] | None = None):
        super().__init__(message, extra=extra)
        self.tx_hash = tx_hash
