import structlog

from config.env import env

LOG_LEVEL = env("LOG_LEVEL", default="INFO")

REDACTED = "**redacted**"
SENSITIVE_KEYS = ("private_key", "secret", "token", "signature", "signer_key")


def redact_sensitive(logger, name, event_dict):
    """
    Masque toute valeur dont la clé ressemble à un secret.
    Aucune clé privée ne doit sortir dans les logs, même par erreur.
    """
    for key in list(event_dict.keys()):
        lowered = key.lower()
        if any(s in lowered for s in SENSITIVE_KEYS):
            event_dict[key] = REDACTED
    return event_dict


timestamper = structlog.processors.TimeStamper(fmt="iso", utc=True)
pre_chain = [
    structlog.stdlib.add_log_level,
    structlog.stdlib.add_logger_name,
    timestamper,
    redact_sensitive,
]

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "root": {"level": LOG_LEVEL, "handlers": ["default"]},
    "loggers": {
        "web3": {"level": "WARNING", "handlers": ["default"], "propagate": False},
        "hvac": {"level": "WARNING", "handlers": ["default"], "propagate": False},
        "celery": {"level": "INFO", "handlers": ["default"], "propagate": False},
    },
    "handlers": {
        "default": {
            "class": "logging.StreamHandler",
            "formatter": "logfmt_formatter",
        },
    },
    "formatters": {
        "logfmt_formatter": {
            "()": structlog.stdlib.ProcessorFormatter,
            "processor": structlog.processors.LogfmtRenderer(),
            "foreign_pre_chain": pre_chain,
        }
    },
}

structlog.configure(
    processors=[
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        *pre_chain,
        structlog.processors.format_exc_info,
        structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
    ],
    logger_factory=structlog.stdlib.LoggerFactory(),
    wrapper_class=structlog.stdlib.BoundLogger,
    cache_logger_on_first_use=True,
)
