"""Contrato assíncrono de persistência de sessão.

Versão async-first do SessionStore para não bloquear o event loop.
Os erros são os mesmos do contrato síncrono (session_contract).
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING

from mongodb_session.domain.protocols.session_store import AsyncSessionStoreProtocol

if TYPE_CHECKING:
    from mongodb_session.domain.protocols.session_model import SessionModel


class AsyncSessionStore(AsyncSessionStoreProtocol):
    """Contrato abstrato para armazenamento assíncrono de sessões."""

    @abstractmethod
    async def store(self, session: SessionModel) -> str | None:
        """Persiste (upsert) a sessão de forma assíncrona.

        Args:
            session: Sessão a persistir

        Returns:
            Cookie a devolver ao cliente, ou None se não elegível

        Raises:
            SessionSerializationError: Se o payload não puder ser codificado
            DatabaseOperationError: Se a escrita falhar
        """
        ...

    @abstractmethod
    async def load(self, cookie_value: str) -> SessionModel | None:
        """Carrega sessão pelo cookie de forma assíncrona.

        Args:
            cookie_value: Valor do cookie apresentado pelo cliente

        Returns:
            Sessão ou None se ausente/expirada/ilegível

        Raises:
            MalformedCookieError: Se o cookie for inválido
            DatabaseOperationError: Se a leitura falhar
        """
        ...

    @abstractmethod
    async def destroy(self, session: SessionModel) -> None:
        """Remove a sessão (idempotente)."""
        ...

    @abstractmethod
    async def clear(self) -> None:
        """Remove todas as sessões do store."""
        ...

    @abstractmethod
    async def provision_expiry_index(self) -> None: ...

    @abstractmethod
    async def provision_created_index(self, ttl_seconds: int) -> None: ...
