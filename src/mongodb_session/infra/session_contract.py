"""Contrato de persistência de sessão (SessionStore) e erros tipados.

Separado para manter SRP e permitir reuso entre implementações
(MongoDB sync, MongoDB async, memória).
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING

from mongodb_session.domain.protocols.session_store import SessionStoreProtocol

if TYPE_CHECKING:
    from mongodb_session.domain.protocols.session_model import SessionModel


class SessionStoreError(Exception):
    """Erro ao persistir ou recuperar sessão."""

    pass


class SessionStoreConnectionError(SessionStoreError):
    """Banco inacessível ou autenticação recusada na construção do store."""

    pass


class MalformedCookieError(SessionStoreError):
    """Session id não pôde ser derivado do cookie apresentado."""

    pass


class SessionSerializationError(SessionStoreError):
    """Payload da sessão não pôde ser codificado em documento."""

    pass


class DatabaseOperationError(SessionStoreError):
    """Operação find/replace/delete/drop/índice falhou ou excedeu timeout."""

    pass


class SessionStore(SessionStoreProtocol):
    """Contrato abstrato síncrono para armazenamento de sessões."""

    @abstractmethod
    def store(self, session: SessionModel) -> str | None:
        """Persiste (upsert) a sessão.

        Returns:
            Cookie a devolver ao cliente, ou None se não elegível

        Raises:
            SessionSerializationError: Se o payload não puder ser codificado
            DatabaseOperationError: Se a escrita falhar
        """
        ...

    @abstractmethod
    def load(self, cookie_value: str) -> SessionModel | None:
        """Carrega sessão pelo cookie.

        Returns:
            Sessão se encontrada e não expirada, None caso contrário

        Raises:
            MalformedCookieError: Se o cookie for inválido
            DatabaseOperationError: Se a leitura falhar
        """
        ...

    @abstractmethod
    def destroy(self, session: SessionModel) -> None:
        """Remove a sessão (idempotente)."""
        ...

    @abstractmethod
    def clear(self) -> None:
        """Remove todas as sessões do store."""
        ...

    @abstractmethod
    def provision_expiry_index(self) -> None:
        """Garante remoção física de registros após expireAt."""
        ...

    @abstractmethod
    def provision_created_index(self, ttl_seconds: int) -> None:
        """Garante remoção física de registros ttl_seconds após created."""
        ...
