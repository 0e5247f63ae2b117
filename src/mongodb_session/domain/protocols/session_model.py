"""Contrato do modelo de sessão consumido pelos stores.

O store não depende de um tipo concreto: qualquer classe que satisfaça
SessionModel pode ser persistida (ver domain.session.Session).
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from typing import Any, Protocol, Self, runtime_checkable


@runtime_checkable
class SessionModel(Protocol):
    """Capacidades mínimas exigidas de uma sessão persistível.

    - id: identificador único (derivado do cookie)
    - expiry: instante de expiração opcional (UTC)
    - into_cookie_value / id_from_cookie_value: mapeamento cookie <-> id
    - to_document / from_document: (de)serialização em documento BSON
    - new: sessão vazia recém-construída
    """

    @property
    def id(self) -> str: ...

    @property
    def expiry(self) -> datetime | None: ...

    def into_cookie_value(self) -> str | None: ...

    def to_document(self) -> dict[str, Any]: ...

    @classmethod
    def id_from_cookie_value(cls, cookie_value: str) -> str:
        """Deriva o id a partir do cookie.

        Raises:
            ValueError: Se o cookie não puder ser decodificado
        """
        ...

    @classmethod
    def from_document(cls, document: Mapping[str, Any]) -> Self: ...

    @classmethod
    def new(cls) -> Self: ...
