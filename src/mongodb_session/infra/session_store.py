"""Factory de SessionStore conforme SESSION_STORE_BACKEND."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from mongodb_session.domain.session import Session
from mongodb_session.infra.session_contract import SessionStore
from mongodb_session.infra.session_store_memory import InMemorySessionStore
from mongodb_session.infra.session_store_mongodb import MongoSessionStore
from mongodb_session.observability.logging import get_logger

if TYPE_CHECKING:
    from mongodb_session.config.settings import Settings
    from mongodb_session.domain.protocols.session_model import SessionModel

logger: logging.Logger = get_logger(__name__)


def create_session_store(
    settings: Settings | None = None,
    *,
    session_type: type[SessionModel] = Session,
) -> SessionStore:
    """Factory para criar o session store apropriado.

    Usa settings.session_store_backend para determinar implementação:
    - "memory": InMemorySessionStore (dev/testes)
    - "mongodb": MongoSessionStore (produção)

    Args:
        settings: Configurações da aplicação. Se None, usa get_settings()
        session_type: Modelo de sessão persistido pelo store

    Returns:
        Instância do store configurado

    Raises:
        ValueError: Se backend não reconhecido ou configuração inválida
            (ex.: memory em staging/production)
        SessionStoreConnectionError: Se MongoDB não estiver acessível
    """
    if settings is None:
        from mongodb_session.config.settings import get_settings

        settings = get_settings()

    errors = settings.validate_session_store_config()
    if errors:
        logger.error(
            "Invalid session store configuration",
            extra={"environment": settings.environment, "errors": errors},
        )
        raise ValueError("; ".join(errors))

    backend = settings.session_store_backend.lower()
    if backend == "memory":
        logger.info(
            "Using InMemorySessionStore (dev/tests only)",
            extra={"ttl_seconds": settings.session_default_ttl_seconds},
        )
        return InMemorySessionStore(
            session_type=session_type,
            default_ttl_seconds=settings.session_default_ttl_seconds,
        )

    if backend == "mongodb":
        logger.info(
            "Using MongoSessionStore",
            extra={
                "database": settings.mongodb_database,
                "collection": settings.mongodb_collection,
                "ttl_seconds": settings.session_default_ttl_seconds,
            },
        )
        return MongoSessionStore.from_settings(settings, session_type=session_type)

    raise ValueError(f"Backend de session store não reconhecido: {backend}")
