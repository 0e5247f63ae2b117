"""Protocolos de domínio para persistência de sessão (sync e async)."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from mongodb_session.domain.protocols.session_model import SessionModel


class SessionStoreProtocol(ABC):
    """Contrato mínimo síncrono consumido pela camada de sessão web."""

    @abstractmethod
    def store(self, session: SessionModel) -> str | None: ...

    @abstractmethod
    def load(self, cookie_value: str) -> SessionModel | None: ...

    @abstractmethod
    def destroy(self, session: SessionModel) -> None: ...

    @abstractmethod
    def clear(self) -> None: ...


class AsyncSessionStoreProtocol(ABC):
    """Contrato mínimo assíncrono consumido pela camada de sessão web."""

    @abstractmethod
    async def store(self, session: SessionModel) -> str | None: ...

    @abstractmethod
    async def load(self, cookie_value: str) -> SessionModel | None: ...

    @abstractmethod
    async def destroy(self, session: SessionModel) -> None: ...

    @abstractmethod
    async def clear(self) -> None: ...
