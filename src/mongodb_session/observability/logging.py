"""Logging JSON do session store.

Os stores registram apenas metadados: session_id mascarado, nomes de
coleção e índice, tipo do erro. SessionLogFilter garante isso mesmo
quando um chamador repassa campos sensíveis via `extra`.
"""

from __future__ import annotations

import logging
from typing import IO

from pythonjsonlogger.json import JsonFormatter

from mongodb_session.observability.context import get_correlation_id

# Logger raiz do pacote; configure_logging não altera o root logger da aplicação
PACKAGE_LOGGER = "mongodb_session"

# Campos de `extra` que nunca podem sair em claro
REDACTED_FIELDS: frozenset[str] = frozenset(
    {"cookie", "cookie_value", "session", "payload", "data"}
)
REDACTED = "<redacted>"

_MASK_SUFFIX = "..."
_MASK_PREFIX_LEN = 8


def mask_session_id(session_id: str | None) -> str:
    """Trunca o session_id para log (nunca logar o id completo)."""
    if not session_id:
        return "<empty>"
    return session_id[:_MASK_PREFIX_LEN] + _MASK_SUFFIX


class SessionLogFilter(logging.Filter):
    """Adiciona correlation_id e remove dados de sessão do record."""

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: A003
        if not getattr(record, "correlation_id", None):
            record.correlation_id = get_correlation_id()

        for field in REDACTED_FIELDS:
            if field in record.__dict__:
                setattr(record, field, REDACTED)

        session_id = record.__dict__.get("session_id")
        if isinstance(session_id, str) and not session_id.endswith(_MASK_SUFFIX):
            record.session_id = mask_session_id(session_id)
        return True


def configure_logging(
    level: str | None = None,
    service_name: str | None = None,
    *,
    stream: IO[str] | None = None,
) -> logging.Logger:
    """Envia os logs do pacote como JSON para stream (stderr por padrão).

    level e service_name vêm de LOG_LEVEL e SERVICE_NAME quando omitidos.
    """
    if level is None or service_name is None:
        from mongodb_session.config.settings import get_settings

        settings = get_settings()
        level = level or settings.log_level
        service_name = service_name or settings.service_name

    formatter = JsonFormatter(
        "%(levelname)s %(name)s %(message)s %(correlation_id)s",
        rename_fields={"levelname": "level", "name": "logger"},
        static_fields={"service": service_name},
        timestamp=True,
    )

    handler = logging.StreamHandler(stream)
    handler.setFormatter(formatter)
    handler.addFilter(SessionLogFilter())

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.setLevel(level.upper())
    package_logger.handlers = [handler]
    package_logger.propagate = False
    return package_logger


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
