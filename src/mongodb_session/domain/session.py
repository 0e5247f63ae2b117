"""Modelo de sessão padrão: Session.

Session é o registro opaco persistido pelos stores:
- Uma sessão = um id único, derivado do cookie entregue ao cliente
- O cookie só existe em sessões recém-criadas (nunca é persistido)
- O payload (data) pertence ao chamador; o store não altera seu conteúdo
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import secrets
from collections.abc import Mapping
from datetime import UTC, datetime, timedelta
from typing import Any

from pydantic import BaseModel, Field, PrivateAttr, field_validator

# Tamanho do segredo aleatório por trás do cookie (bytes)
COOKIE_SECRET_BYTES: int = 64


class CookieDecodeError(ValueError):
    """Cookie não pôde ser convertido em session id."""

    pass


def _id_from_cookie_bytes(raw: bytes) -> str:
    return base64.b64encode(hashlib.sha256(raw).digest()).decode("ascii")


def _now() -> datetime:
    return datetime.now(tz=UTC)


def as_utc(value: datetime) -> datetime:
    """Normaliza datetime para UTC aware."""
    # Clientes pymongo sem tz_aware devolvem datetime naive em UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


class Session(BaseModel):
    """Sessão com payload chave/valor e expiração opcional.

    Responsabilidades:
    - Gerar cookie aleatório e id derivado (sha256 do cookie)
    - Guardar payload arbitrário serializável em BSON
    - Controlar expiração, destruição e regeneração de id
    """

    id: str
    expiry: datetime | None = None
    data: dict[str, Any] = Field(default_factory=dict)

    _cookie_value: str | None = PrivateAttr(default=None)
    _data_changed: bool = PrivateAttr(default=False)
    _destroyed: bool = PrivateAttr(default=False)

    @field_validator("expiry")
    @classmethod
    def ensure_utc(cls, value: datetime | None) -> datetime | None:
        return as_utc(value) if value is not None else None

    @classmethod
    def new(cls) -> Session:
        """Cria sessão vazia com cookie recém-gerado."""
        raw = secrets.token_bytes(COOKIE_SECRET_BYTES)
        session = cls(id=_id_from_cookie_bytes(raw))
        session._cookie_value = base64.b64encode(raw).decode("ascii")
        return session

    @classmethod
    def id_from_cookie_value(cls, cookie_value: str) -> str:
        """Deriva o session id a partir do valor do cookie.

        Raises:
            CookieDecodeError: Se o cookie não for base64 válido
        """
        try:
            raw = base64.b64decode(cookie_value, validate=True)
        except (binascii.Error, ValueError, TypeError) as e:
            raise CookieDecodeError("cookie value is not valid base64") from e

        if not raw:
            raise CookieDecodeError("cookie value is empty")

        return _id_from_cookie_bytes(raw)

    # ------------------------------------------------------------------
    # Payload
    # ------------------------------------------------------------------

    def insert(self, key: str, value: Any) -> None:
        self.data[key] = value
        self._data_changed = True

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)

    def remove(self, key: str) -> None:
        if key in self.data:
            del self.data[key]
            self._data_changed = True

    def clear(self) -> None:
        if self.data:
            self.data.clear()
            self._data_changed = True

    def __len__(self) -> int:
        return len(self.data)

    def __bool__(self) -> bool:
        # Sessão vazia continua sendo uma sessão válida
        return True

    def __contains__(self, key: object) -> bool:
        return key in self.data

    def is_empty(self) -> bool:
        return not self.data

    @property
    def data_changed(self) -> bool:
        return self._data_changed

    def reset_data_changed(self) -> None:
        self._data_changed = False

    # ------------------------------------------------------------------
    # Expiração
    # ------------------------------------------------------------------

    def expire_in(self, ttl: int | float | timedelta) -> None:
        """Expira a sessão após ttl (segundos ou timedelta) a partir de agora."""
        delta = ttl if isinstance(ttl, timedelta) else timedelta(seconds=ttl)
        self.expiry = _now() + delta

    def set_expiry(self, expiry: datetime) -> None:
        self.expiry = as_utc(expiry)

    def set_cookie_value(self, cookie_value: str) -> None:
        """Associa um cookie já emitido (ex.: sessão reconstruída pelo chamador)."""
        self._cookie_value = cookie_value

    def expires_in(self) -> timedelta | None:
        """Tempo restante até expirar (None se sem expiração ou já expirada)."""
        if self.expiry is None:
            return None
        remaining = self.expiry - _now()
        if remaining <= timedelta(0):
            return None
        return remaining

    def is_expired(self) -> bool:
        return self.expiry is not None and self.expiry < _now()

    def validate_session(self) -> Session | None:
        """Retorna a própria sessão se ainda válida, None se expirada."""
        return None if self.is_expired() else self

    # ------------------------------------------------------------------
    # Ciclo de vida
    # ------------------------------------------------------------------

    def destroy(self) -> None:
        """Marca a sessão para remoção pela camada de sessão web."""
        self._destroyed = True

    @property
    def is_destroyed(self) -> bool:
        return self._destroyed

    def regenerate(self) -> None:
        """Troca id e cookie mantendo payload e expiração."""
        raw = secrets.token_bytes(COOKIE_SECRET_BYTES)
        self.id = _id_from_cookie_bytes(raw)
        self._cookie_value = base64.b64encode(raw).decode("ascii")

    def into_cookie_value(self) -> str | None:
        """Cookie a devolver ao cliente.

        None para sessões carregadas do store (cookie já emitido) ou
        expiradas no momento da criação.
        """
        if self.is_expired():
            return None
        return self._cookie_value

    # ------------------------------------------------------------------
    # Serialização
    # ------------------------------------------------------------------

    def to_document(self) -> dict[str, Any]:
        """Payload + metadados (id, expiry) como documento BSON-compatível."""
        return self.model_dump(mode="python")

    @classmethod
    def from_document(cls, document: Mapping[str, Any]) -> Session:
        return cls.model_validate(dict(document))
