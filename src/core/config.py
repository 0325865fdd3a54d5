"""Configuración del tracker.

Por qué aquí:
- Un solo sitio para env vars y `.env` (pydantic-settings); CLI, stores y
  cliente remoto leen el mismo objeto.
- Las credenciales remotas no son env vars: el usuario las introduce en
  `doctor setup-remote` y se guardan en el key-value store local.
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path

import structlog
from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from core.domain.models import RemoteConfig
from core.interfaces.storage import KeyValueStore

logger = structlog.get_logger(__name__)

REMOTE_CONFIG_KEY = "remote_config"


def get_user_config_dir() -> Path:
    """Directorio de configuración por usuario (cross-platform, sin dependencias)."""

    if sys.platform.startswith("win"):
        base = Path(os.environ.get("APPDATA", str(Path.home())))
        return base / "domain-tracker"
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "domain-tracker"

    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / "domain-tracker"
    return Path.home() / ".config" / "domain-tracker"


def get_user_env_file() -> Path:
    return get_user_config_dir() / ".env"


class AppSettings(BaseSettings):
    """Ajustes de ejecución (directorio de datos, timeouts, logging).

    Prefijo `DOMAIN_TRACKER_`: `DOMAIN_TRACKER_DATA_DIR=/tmp/x` etc.
    """

    model_config = SettingsConfigDict(
        env_prefix="DOMAIN_TRACKER_",
        extra="ignore",
        case_sensitive=False,
        # Orden: proyecto primero (dev), luego config global de usuario.
        env_file=(".env", str(get_user_env_file())),
        env_file_encoding="utf-8",
    )

    data_dir: Path | None = Field(
        default=None,
        description="Directorio del key-value store local (por defecto <config>/data).",
    )
    http_timeout_seconds: float = Field(
        default=15.0,
        gt=0,
        description="Timeout por request al servicio remoto (segundos).",
    )
    remote_operation_timeout_seconds: float = Field(
        default=60.0,
        gt=0,
        description="Tope por operación remota completa (paginación o escaneo incluidos).",
    )
    airtable_api_url: str = Field(
        default="https://api.airtable.com/v0",
        min_length=8,
        description="Raíz de la API tabular remota.",
    )
    user_agent: str = Field(
        default="domain-tracker/0.1",
        min_length=1,
    )
    log_level: str = Field(
        default="WARNING",
        description="Nivel mínimo de log (DEBUG, INFO, WARNING, ERROR).",
    )
    log_json: bool = Field(
        default=False,
        description="Logs en JSON (una línea por evento) en vez de formato consola.",
    )

    def resolved_data_dir(self) -> Path:
        if self.data_dir is not None:
            return self.data_dir
        return get_user_config_dir() / "data"


def load_remote_config(store: KeyValueStore) -> RemoteConfig | None:
    """Lee `{apiKey, baseId, tableName}`; None si no existe o está incompleta."""

    raw = store.get(REMOTE_CONFIG_KEY)
    if not raw:
        return None
    try:
        config = RemoteConfig.model_validate(json.loads(raw))
    except (json.JSONDecodeError, ValidationError) as exc:
        logger.error("remote_config_corrupt", error=str(exc))
        return None
    if not config.is_complete:
        return None
    return config


def save_remote_config(store: KeyValueStore, config: RemoteConfig) -> None:
    store.set(REMOTE_CONFIG_KEY, json.dumps(config.model_dump(by_alias=True)))


def clear_remote_config(store: KeyValueStore) -> None:
    store.remove(REMOTE_CONFIG_KEY)
