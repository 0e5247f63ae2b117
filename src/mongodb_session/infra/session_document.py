"""Envelope persistido das sessões e especificação dos índices TTL.

Formato do documento (uma coleção, um documento por session_id):

    {
        "session_id": "<id derivado do cookie>",
        "session": {...payload serializado pelo modelo...},
        "created": <datetime UTC da escrita>,
        "expireAt": <datetime UTC de expiração>,
    }

Compartilhado pelos stores sync, async e em memória para que todos
apliquem a mesma regra de TTL e de expiração lógica.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any

import bson
from bson.errors import InvalidDocument
from pymongo import ASCENDING, IndexModel

from mongodb_session.domain.session import as_utc
from mongodb_session.infra.session_contract import SessionSerializationError
from mongodb_session.infra.session_validations import ensure_storable_id
from mongodb_session.observability.logging import get_logger, mask_session_id

if TYPE_CHECKING:
    from mongodb_session.domain.protocols.session_model import SessionModel

logger = get_logger(__name__)

SESSION_ID_FIELD: str = "session_id"
PAYLOAD_FIELD: str = "session"
CREATED_FIELD: str = "created"
EXPIRE_AT_FIELD: str = "expireAt"

EXPIRE_INDEX_NAME: str = "session_expire_index"
CREATED_INDEX_NAME: str = "session_created_index"


def session_filter(session_id: str) -> dict[str, str]:
    return {SESSION_ID_FIELD: session_id}


def compute_expire_at(
    session: SessionModel, default_ttl_seconds: int, now: datetime
) -> datetime:
    """Expiração declarada pela sessão, ou now + TTL padrão."""
    if session.expiry is not None:
        return as_utc(session.expiry)
    return now + timedelta(seconds=default_ttl_seconds)


def build_session_document(
    session: SessionModel,
    default_ttl_seconds: int,
    now: datetime | None = None,
) -> dict[str, Any]:
    """Monta o documento completo a ser gravado via upsert.

    Raises:
        SessionSerializationError: Se o payload não for codificável em BSON
    """
    session_id = ensure_storable_id(session)
    now = now or datetime.now(tz=UTC)

    try:
        payload = session.to_document()
        # Codifica antes de ir ao banco: falha aqui nunca gera escrita parcial
        bson.encode(payload)
    except (InvalidDocument, TypeError, ValueError, OverflowError) as e:
        logger.error(
            "Failed to serialize session",
            extra={"session_id": mask_session_id(session_id), "error": str(e)},
        )
        raise SessionSerializationError(f"Session payload is not encodable: {e}") from e

    return {
        SESSION_ID_FIELD: session_id,
        PAYLOAD_FIELD: payload,
        CREATED_FIELD: now,
        EXPIRE_AT_FIELD: compute_expire_at(session, default_ttl_seconds, now),
    }


def parse_expire_at(raw_expire_at: datetime | str | None) -> datetime | None:
    if raw_expire_at is None:
        return None

    if isinstance(raw_expire_at, datetime):
        return as_utc(raw_expire_at)

    try:
        normalized = raw_expire_at.replace("Z", "+00:00")
        return as_utc(datetime.fromisoformat(normalized))
    except (AttributeError, ValueError):
        return None


def is_logically_expired(document: Mapping[str, Any], now: datetime | None = None) -> bool:
    """True se expireAt já passou (mesmo antes do reaper do MongoDB remover)."""
    expire_at = parse_expire_at(document.get(EXPIRE_AT_FIELD))
    if expire_at is None:
        return False
    return expire_at < (now or datetime.now(tz=UTC))


def decode_session(
    document: Mapping[str, Any] | None,
    session_type: type[SessionModel],
    now: datetime | None = None,
) -> SessionModel | None:
    """Converte o documento persistido de volta em sessão.

    Ausência, expiração lógica e payload ilegível resultam em None.
    Payload ausente é substituído por uma sessão vazia recém-construída.
    """
    if document is None:
        logger.debug("Session not found")
        return None

    session_id = mask_session_id(document.get(SESSION_ID_FIELD))

    if is_logically_expired(document, now):
        logger.debug("Session expired", extra={"session_id": session_id})
        return None

    payload = document.get(PAYLOAD_FIELD)
    if payload is None:
        logger.warning(
            "Session payload missing, using empty session",
            extra={"session_id": session_id},
        )
        payload = session_type.new().to_document()

    try:
        if isinstance(payload, (str, bytes)):
            # Registros legados guardavam o payload como texto JSON
            payload = json.loads(payload)
        session = session_type.from_document(payload)
    except Exception as e:
        # from_document do chamador pode falhar com qualquer exceção
        logger.warning(
            "Session payload could not be decoded",
            extra={"session_id": session_id, "error": type(e).__name__},
        )
        return None

    logger.debug("Session loaded", extra={"session_id": session_id})
    return session


def expiry_index_model() -> IndexModel:
    """Índice TTL em expireAt com expiração no próprio instante."""
    return IndexModel(
        [(EXPIRE_AT_FIELD, ASCENDING)],
        name=EXPIRE_INDEX_NAME,
        expireAfterSeconds=0,
    )


def created_index_model(ttl_seconds: int) -> IndexModel:
    """Índice TTL em created (expira ttl_seconds após a última escrita)."""
    return IndexModel(
        [(CREATED_FIELD, ASCENDING)],
        name=CREATED_INDEX_NAME,
        expireAfterSeconds=ttl_seconds,
    )


def check_ttl_seconds(ttl_seconds: int, *, allow_zero: bool = False) -> int:
    """Valida TTL inteiro (bool não é aceito)."""
    if isinstance(ttl_seconds, bool) or not isinstance(ttl_seconds, int):
        raise ValueError(f"TTL deve ser inteiro em segundos, recebido {ttl_seconds!r}")
    if ttl_seconds < 0 or (ttl_seconds == 0 and not allow_zero):
        raise ValueError(f"TTL inválido: {ttl_seconds}")
    return ttl_seconds
