"""Configurações do session store via variáveis de ambiente.

Todas as configurações são carregadas de env vars (ou arquivo .env em dev).
Nunca hardcode credenciais do MongoDB; use MONGODB_URI.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

# -----------------------------------------------------------------------------
# Padrões do adapter
# -----------------------------------------------------------------------------
DEFAULT_SESSION_TTL_SECONDS: int = 1200
DEFAULT_MONGODB_HOST: str = "127.0.0.1"
DEFAULT_MONGODB_PORT: int = 27017


class Settings(BaseSettings):
    """Configurações lidas do ambiente."""

    model_config = SettingsConfigDict(
        env_prefix="",
        case_sensitive=False,
        env_file=".env",
        extra="ignore",
    )

    # Aplicação
    service_name: str = "mongodb_session"
    environment: str = "development"
    log_level: str = "INFO"

    # MongoDB
    mongodb_uri: str | None = None  # Tem precedência sobre host/port
    mongodb_host: str = DEFAULT_MONGODB_HOST
    mongodb_port: int = DEFAULT_MONGODB_PORT
    mongodb_database: str = "db_name"
    mongodb_collection: str = "collection"
    mongodb_server_selection_timeout_ms: int | None = None  # None = padrão do driver

    # Session store
    session_store_backend: str = "mongodb"  # memory | mongodb
    session_default_ttl_seconds: int = DEFAULT_SESSION_TTL_SECONDS
    session_created_ttl_seconds: int | None = None  # TTL por idade (índice em created)
    session_reprovision_indexes_on_clear: bool = True

    @property
    def connection_string(self) -> str:
        """Retorna a URI de conexão (MONGODB_URI ou host/port)."""
        if self.mongodb_uri:
            return self.mongodb_uri
        return f"mongodb://{self.mongodb_host}:{self.mongodb_port}/"

    @property
    def client_options(self) -> dict[str, int]:
        """Opções repassadas ao MongoClient sem alteração."""
        options: dict[str, int] = {}
        if self.mongodb_server_selection_timeout_ms is not None:
            options["serverSelectionTimeoutMS"] = self.mongodb_server_selection_timeout_ms
        return options

    def validate_session_store_config(self) -> list[str]:
        """Valida backend e TTLs do session store.

        Em staging/prod, memory é proibido (múltiplas instâncias).
        Retorna lista de erros (vazia = tudo OK).
        """
        errors: list[str] = []
        backend = self.session_store_backend.lower()

        valid_backends = {"memory", "mongodb"}
        if backend not in valid_backends:
            errors.append(
                f"SESSION_STORE_BACKEND '{backend}' inválido. Valores válidos: {valid_backends}"
            )

        if backend == "memory" and (self.is_staging or self.is_production):
            errors.append(
                "SESSION_STORE_BACKEND=memory é proibido em staging/production. "
                "Configure 'mongodb'."
            )

        if self.session_default_ttl_seconds <= 0:
            errors.append("SESSION_DEFAULT_TTL_SECONDS deve ser > 0")

        if self.session_created_ttl_seconds is not None and self.session_created_ttl_seconds < 0:
            errors.append("SESSION_CREATED_TTL_SECONDS deve ser >= 0")

        if not self.mongodb_database:
            errors.append("MONGODB_DATABASE não configurado")
        if not self.mongodb_collection:
            errors.append("MONGODB_COLLECTION não configurado")

        return errors

    @property
    def is_production(self) -> bool:
        """Retorna True se ambiente é produção."""
        return self.environment.lower() in ("production", "prod")

    @property
    def is_staging(self) -> bool:
        """Retorna True se ambiente é staging."""
        return self.environment.lower() in ("staging", "stage")

    @property
    def is_development(self) -> bool:
        """Retorna True se ambiente é desenvolvimento."""
        return self.environment.lower() in ("development", "dev", "local")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Retorna uma instância cacheada de Settings.

    A cache garante que mesmo múltiplas injeções não criam novos objetos.
    """
    return Settings()
