"""Implementação de SessionStore em memória (apenas dev/testes)."""

from __future__ import annotations

import copy
import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from mongodb_session.config.settings import DEFAULT_SESSION_TTL_SECONDS
from mongodb_session.domain.session import Session
from mongodb_session.infra.session_contract import SessionStore
from mongodb_session.infra.session_document import (
    SESSION_ID_FIELD,
    build_session_document,
    check_ttl_seconds,
    decode_session,
    is_logically_expired,
)
from mongodb_session.infra.session_validations import ensure_storable_id, resolve_session_id
from mongodb_session.observability.logging import get_logger, mask_session_id

if TYPE_CHECKING:
    from mongodb_session.domain.protocols.session_model import SessionModel

logger: logging.Logger = get_logger(__name__)


class InMemorySessionStore(SessionStore):
    """Armazenamento em memória (não usar em produção).

    Guarda o mesmo envelope do MongoDB, indexado por session_id.
    Registros expirados são removidos no load (não há reaper).
    """

    def __init__(
        self,
        *,
        session_type: type[SessionModel] = Session,
        default_ttl_seconds: int = DEFAULT_SESSION_TTL_SECONDS,
    ) -> None:
        self._session_type = session_type
        self._default_ttl_seconds = check_ttl_seconds(default_ttl_seconds)
        self._documents: dict[str, dict[str, Any]] = {}

    @property
    def default_ttl_seconds(self) -> int:
        return self._default_ttl_seconds

    def set_default_ttl(self, ttl_seconds: int) -> None:
        self._default_ttl_seconds = check_ttl_seconds(ttl_seconds)

    def __len__(self) -> int:
        return len(self._documents)

    def store(self, session: SessionModel) -> str | None:
        document = build_session_document(
            session, self._default_ttl_seconds, datetime.now(tz=UTC)
        )
        session_id = document[SESSION_ID_FIELD]
        self._documents[session_id] = document
        logger.debug(
            "Session saved (in-memory)",
            extra={"session_id": mask_session_id(session_id)},
        )
        return session.into_cookie_value()

    def load(self, cookie_value: str) -> SessionModel | None:
        session_id = resolve_session_id(self._session_type, cookie_value)
        document = self._documents.get(session_id)

        if document is not None and is_logically_expired(document):
            del self._documents[session_id]
            logger.debug(
                "Session expired (in-memory)",
                extra={"session_id": mask_session_id(session_id)},
            )
            return None

        return decode_session(copy.deepcopy(document), self._session_type)

    def destroy(self, session: SessionModel) -> None:
        session_id = ensure_storable_id(session)
        if self._documents.pop(session_id, None) is not None:
            logger.debug(
                "Session deleted (in-memory)",
                extra={"session_id": mask_session_id(session_id)},
            )

    def clear(self) -> None:
        self._documents.clear()

    def provision_expiry_index(self) -> None:
        return None

    def provision_created_index(self, ttl_seconds: int) -> None:
        check_ttl_seconds(ttl_seconds, allow_zero=True)
