"""Configurações centralizadas do mongodb_session.

Este módulo exporta:
- Settings: classe de configuração via variáveis de ambiente
- get_settings: função cacheada para obter instância única
- Padrões do adapter (DEFAULT_SESSION_TTL_SECONDS, etc.)

Uso típico:
    from mongodb_session.config import get_settings
"""

from mongodb_session.config.settings import (
    DEFAULT_MONGODB_HOST,
    DEFAULT_MONGODB_PORT,
    DEFAULT_SESSION_TTL_SECONDS,
    Settings,
    get_settings,
)

__all__ = [
    "Settings",
    "get_settings",
    "DEFAULT_SESSION_TTL_SECONDS",
    "DEFAULT_MONGODB_HOST",
    "DEFAULT_MONGODB_PORT",
]
