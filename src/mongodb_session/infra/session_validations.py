"""Validações de sessão antes de qualquer operação em SessionStore."""

from __future__ import annotations

from typing import TYPE_CHECKING

from mongodb_session.infra.session_contract import (
    MalformedCookieError,
    SessionSerializationError,
)
from mongodb_session.observability.logging import get_logger

if TYPE_CHECKING:
    from mongodb_session.domain.protocols.session_model import SessionModel


logger = get_logger(__name__)


def ensure_storable_id(session: SessionModel) -> str:
    """Garante id não vazio antes de usar como chave do upsert.

    Um id vazio colapsaria todas as sessões inválidas no mesmo registro.
    """

    session_id = session.id
    if not isinstance(session_id, str) or not session_id:
        logger.error(
            "Invalid session id",
            extra={"session_type": type(session).__name__},
        )
        raise SessionSerializationError("session id must be a non-empty string")
    return session_id


def resolve_session_id(session_type: type[SessionModel], cookie_value: str) -> str:
    """Deriva o session id do cookie via modelo do chamador.

    Raises:
        MalformedCookieError: Se o modelo rejeitar o cookie
    """

    if not isinstance(cookie_value, str) or not cookie_value:
        raise MalformedCookieError("cookie value is empty")

    try:
        return session_type.id_from_cookie_value(cookie_value)
    except ValueError as e:
        logger.warning(
            "Malformed session cookie",
            extra={"cookie_length": len(cookie_value), "error": str(e)},
        )
        raise MalformedCookieError(f"Malformed session cookie: {e}") from e
