"""Adaptador remoto: API tabular (Airtable REST).

Objetivo:
- Mapear `Domain` <-> fila remota (`{"id": recXXX, "fields": {...}}`).
- Ejecutar fetch/create/update/delete sin dejar escapar excepciones: el
  selector de backend decide el fallback a partir de `[]` / None / False.

Notas:
- `tasks` viaja como un único string JSON (no hay sub-recursos).
- update/delete usan el id remoto cacheado (`Domain.remote_id`). Si falta, o
  el servidor responde 404, se busca escaneando todas las filas: O(filas) en
  requests, aceptable a pequeña escala y solo como camino de reparación.
"""

from __future__ import annotations

import json
from typing import Any, Awaitable, Callable, Mapping, TypeVar
from urllib.parse import quote

import httpx
import structlog
from pydantic import ValidationError

from adapters.http_client import build_async_client
from core.config import AppSettings
from core.domain.models import Domain, RemoteConfig
from core.errors import RemoteRequestFailed, RemoteUnconfigured, StorageUnavailable
from core.interfaces.storage import DomainStore

logger = structlog.get_logger(__name__)

# Límite de la API para POST/PATCH/DELETE en lote.
MAX_RECORDS_PER_REQUEST = 10

_FIELD_NAMES = ("id", "name", "url", "da", "dr", "createdAt", "updatedAt")

R = TypeVar("R")


def domain_to_record(domain: Domain) -> dict[str, Any]:
    """`Domain` -> `{"fields": {...}}` con `tasks` serializado como string JSON."""

    data = domain.to_json_dict()
    fields: dict[str, Any] = {
        "id": data["id"],
        "name": data["name"],
        "url": data["url"],
        "tasks": json.dumps(data["tasks"], ensure_ascii=False),
        "createdAt": data["createdAt"],
        "updatedAt": data["updatedAt"],
    }
    if domain.da is not None:
        fields["da"] = domain.da
    if domain.dr is not None:
        fields["dr"] = domain.dr
    return {"fields": fields}


def _decode_tasks(raw: Any, *, record_id: Any) -> Any:
    if raw is None or raw == "":
        return []
    if isinstance(raw, (list, dict)):
        return raw
    try:
        tasks = json.loads(raw)
    except (TypeError, json.JSONDecodeError) as exc:
        logger.warning("remote_tasks_corrupt", record_id=record_id, error=str(exc))
        return []
    if not isinstance(tasks, (list, dict)):
        logger.warning("remote_tasks_corrupt", record_id=record_id, error="unexpected tasks shape")
        return []
    return tasks


def record_to_domain(record: Mapping[str, Any]) -> Domain | None:
    """Fila remota -> `Domain`.

    - `tasks` corrupto -> checklist vacío; el resto del registro se conserva.
    - Acepta tanto la lista canónica como el mapa legacy `{taskKey: bool}`.
    - Filas sin campos obligatorios -> None (se omiten con log).
    """

    fields = record.get("fields") or {}
    record_id = record.get("id")
    payload: dict[str, Any] = {k: fields[k] for k in _FIELD_NAMES if fields.get(k) is not None}
    payload["tasks"] = _decode_tasks(fields.get("tasks"), record_id=record_id)
    payload["remoteId"] = record_id

    try:
        return Domain.model_validate(payload)
    except ValidationError:
        pass

    # Tareas con forma inválida no deben tumbar el registro entero.
    payload["tasks"] = []
    try:
        return Domain.model_validate(payload)
    except ValidationError as exc:
        logger.warning("remote_record_skipped", record_id=record_id, error=str(exc))
        return None


class AirtableClient:
    """Cliente del servicio remoto. Credenciales vía `set_config`."""

    def __init__(
        self,
        settings: AppSettings | None = None,
        config: RemoteConfig | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings or AppSettings()
        self._config = config
        self._transport = transport

    # -- configuración ------------------------------------------------------

    def set_config(self, config: RemoteConfig | None) -> None:
        self._config = config

    @property
    def config(self) -> RemoteConfig | None:
        return self._config

    @property
    def is_configured(self) -> bool:
        return self._config is not None and self._config.is_complete

    def _require_config(self, operation: str) -> bool:
        if self.is_configured:
            return True
        err = RemoteUnconfigured("Remote API key or base id not set", context={"operation": operation})
        logger.error("remote_unconfigured", operation=operation, error=str(err))
        return False

    def _active_config(self) -> RemoteConfig:
        if self._config is None or not self._config.is_complete:
            raise RemoteUnconfigured("Remote API key or base id not set")
        return self._config

    @property
    def table_url(self) -> str:
        config = self._active_config()
        root = self._settings.airtable_api_url.rstrip("/")
        return f"{root}/{quote(config.base_id, safe='')}/{quote(config.table_name, safe='')}"

    # -- transporte ---------------------------------------------------------

    async def _request(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        body: dict[str, Any] | None = None,
    ) -> Any:
        config = self._active_config()
        # Las cabeceras se codifican al crear el cliente: una api key no ASCII
        # falla ahí, antes de la request.
        try:
            async with build_async_client(
                self._settings,
                bearer_token=config.api_key,
                transport=self._transport,
            ) as client:
                resp = await client.request(method, url, params=params, json=body)
        except (httpx.HTTPError, httpx.InvalidURL, UnicodeError) as exc:
            raise RemoteRequestFailed(
                "Remote request failed",
                context={"method": method, "url": url},
                original_error=exc,
            ) from exc

        if not resp.is_success:
            raise RemoteRequestFailed(
                "Remote API error",
                context={"method": method, "url": url, "status_code": resp.status_code},
            )
        if not resp.content:
            return {}
        try:
            return resp.json()
        except ValueError as exc:
            raise RemoteRequestFailed(
                "Remote API returned invalid JSON",
                context={"method": method, "url": url, "status_code": resp.status_code},
                original_error=exc,
            ) from exc

    async def _list_records(self) -> list[dict[str, Any]]:
        records: list[dict[str, Any]] = []
        offset: str | None = None
        while True:
            params = {"offset": offset} if offset else None
            data = await self._request("GET", self.table_url, params=params)
            page = data.get("records") if isinstance(data, dict) else None
            if isinstance(page, list):
                records.extend(r for r in page if isinstance(r, dict))
            offset = data.get("offset") if isinstance(data, dict) else None
            if not offset:
                return records

    async def _find_record_id(self, domain_id: str) -> str | None:
        """Camino de reparación: escanea todas las filas buscando el id lógico."""

        for record in await self._list_records():
            fields = record.get("fields") or {}
            if fields.get("id") == domain_id:
                return record.get("id")
        return None

    async def _with_record_id(
        self,
        domain_id: str,
        cached_id: str | None,
        call: Callable[[str], Awaitable[R]],
    ) -> R | None:
        record_id = cached_id or await self._find_record_id(domain_id)
        if not record_id:
            logger.warning("remote_domain_not_found", domain_id=domain_id)
            return None
        try:
            return await call(record_id)
        except RemoteRequestFailed as exc:
            if cached_id is None or exc.context.get("status_code") != 404:
                raise
        # El id cacheado ya no existe en remoto: reintento tras escanear.
        logger.info("remote_id_stale", domain_id=domain_id, remote_id=cached_id)
        record_id = await self._find_record_id(domain_id)
        if not record_id:
            logger.warning("remote_domain_not_found", domain_id=domain_id)
            return None
        return await call(record_id)

    # -- operaciones --------------------------------------------------------

    async def fetch_domains(self) -> list[Domain]:
        if not self._require_config("fetch"):
            return []
        try:
            records = await self._list_records()
        except RemoteRequestFailed as exc:
            logger.error("remote_request_failed", operation="fetch", error=str(exc))
            return []
        domains = [record_to_domain(r) for r in records]
        return [d for d in domains if d is not None]

    async def create_domains(self, domains: list[Domain]) -> list[Domain]:
        """Alta en lote (bloques de 10). Devuelve lo creado hasta el primer fallo."""

        if not self._require_config("create"):
            return []
        created: list[Domain] = []
        for start in range(0, len(domains), MAX_RECORDS_PER_REQUEST):
            chunk = domains[start : start + MAX_RECORDS_PER_REQUEST]
            body = {"records": [domain_to_record(d) for d in chunk]}
            try:
                data = await self._request("POST", self.table_url, body=body)
            except RemoteRequestFailed as exc:
                logger.error(
                    "remote_request_failed",
                    operation="create",
                    created=len(created),
                    requested=len(domains),
                    error=str(exc),
                )
                return created
            records = data.get("records") if isinstance(data, dict) else None
            for record in records or []:
                if not isinstance(record, dict):
                    continue
                domain = record_to_domain(record)
                if domain is not None:
                    created.append(domain)
        return created

    async def create_domain(self, domain: Domain) -> Domain | None:
        created = await self.create_domains([domain])
        return created[0] if created else None

    async def update_domain(self, domain: Domain) -> Domain | None:
        if not self._require_config("update"):
            return None

        body = domain_to_record(domain)

        async def patch(record_id: str) -> Any:
            return await self._request("PATCH", f"{self.table_url}/{record_id}", body=body)

        try:
            data = await self._with_record_id(domain.id, domain.remote_id, patch)
        except RemoteRequestFailed as exc:
            logger.error("remote_request_failed", operation="update", domain_id=domain.id, error=str(exc))
            return None
        if not isinstance(data, dict) or not data:
            return None
        return record_to_domain(data)

    async def delete_domain(self, domain_id: str, *, remote_id: str | None = None) -> bool:
        if not self._require_config("delete"):
            return False

        async def delete(record_id: str) -> bool:
            await self._request("DELETE", f"{self.table_url}/{record_id}")
            return True

        try:
            deleted = await self._with_record_id(domain_id, remote_id, delete)
        except RemoteRequestFailed as exc:
            logger.error("remote_request_failed", operation="delete", domain_id=domain_id, error=str(exc))
            return False
        return bool(deleted)

    async def migrate_from_store(self, store: DomainStore) -> list[Domain]:
        """Copia única local -> remoto.

        El store local solo se vacía si *todas* las filas se crearon; con un
        resultado vacío o parcial los datos locales quedan intactos.
        """

        if not self._require_config("migrate"):
            return []
        domains = store.list()
        if not domains:
            logger.info("migration_nothing_to_do")
            return []

        created = await self.create_domains(domains)
        if created and len(created) == len(domains):
            try:
                store.clear()
            except StorageUnavailable as exc:
                logger.error("migration_clear_failed", error=str(exc))
                return created
            logger.info("migration_completed", migrated=len(created))
        elif created:
            logger.warning("migration_partial", migrated=len(created), total=len(domains))
        return created
