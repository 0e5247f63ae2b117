"""Re-exports dos Protocolos de domínio para uso pelos stores."""

from __future__ import annotations

from mongodb_session.domain.protocols.session_model import SessionModel
from mongodb_session.domain.protocols.session_store import (
    AsyncSessionStoreProtocol,
    SessionStoreProtocol,
)

__all__ = [
    "SessionModel",
    "SessionStoreProtocol",
    "AsyncSessionStoreProtocol",
]
