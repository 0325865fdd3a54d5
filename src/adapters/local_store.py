"""Store local de dominios.

Por qué está en adapters:
- Es I/O puro sobre el key-value store (un array JSON bajo la clave `domains`).
- El Core solo conoce el contrato `DomainStore`.

Reglas:
- Lectura tolerante: storage corrupto/ilegible -> lista vacía + log.
- `add`/`add_many` nunca crean duplicados (URL normalizada o nombre).
"""

from __future__ import annotations

import json
from typing import Any, Iterable

import structlog
from pydantic import ValidationError

from adapters.json_exporter import dump_domains_json
from core.domain.identity import find_duplicate, generate_id, normalize_url
from core.domain.models import Domain, DomainInput, TaskPatch, utcnow
from core.errors import ImportFormatInvalid, StorageUnavailable
from core.interfaces.storage import KeyValueStore

logger = structlog.get_logger(__name__)

DOMAINS_KEY = "domains"


def parse_domains_json(text: str) -> list[Domain]:
    """Decodifica un export completo. Lanza `ImportFormatInvalid` si no es válido."""

    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ImportFormatInvalid("Payload is not valid JSON", original_error=exc) from exc
    if not isinstance(data, list):
        raise ImportFormatInvalid(
            "Invalid format: expected an array of domains",
            context={"type": type(data).__name__},
        )

    domains: list[Domain] = []
    seen_ids: set[str] = set()
    for index, item in enumerate(data):
        try:
            domain = Domain.model_validate(item)
        except ValidationError as exc:
            raise ImportFormatInvalid(
                "Invalid domain record",
                context={"index": index},
                original_error=exc,
            ) from exc
        if domain.id in seen_ids:
            raise ImportFormatInvalid("Duplicate domain id", context={"id": domain.id})
        seen_ids.add(domain.id)
        domains.append(domain)
    return domains


def coerce_entry(entry: str | DomainInput) -> DomainInput | None:
    if isinstance(entry, DomainInput):
        return entry
    raw = str(entry).strip()
    if not raw:
        return None
    return DomainInput.from_url(raw)


class LocalDomainStore:
    """Colección ordenada de `Domain` persistida en un `KeyValueStore`."""

    def __init__(self, kv: KeyValueStore, *, key: str = DOMAINS_KEY) -> None:
        self._kv = kv
        self._key = key

    # -- persistencia -------------------------------------------------------

    def _load(self) -> list[Domain]:
        try:
            raw = self._kv.get(self._key)
        except StorageUnavailable as exc:
            logger.error("storage_unreadable", key=self._key, error=str(exc))
            return []
        if not raw:
            return []

        try:
            data: Any = json.loads(raw)
        except json.JSONDecodeError as exc:
            logger.error("storage_corrupt", key=self._key, error=str(exc))
            return []
        if not isinstance(data, list):
            logger.error("storage_corrupt", key=self._key, error="expected a JSON array")
            return []

        try:
            return [Domain.model_validate(item) for item in data]
        except ValidationError as exc:
            logger.error("storage_corrupt", key=self._key, error=str(exc))
            return []

    def _save(self, domains: list[Domain]) -> None:
        payload = json.dumps([d.to_json_dict() for d in domains], ensure_ascii=False)
        try:
            self._kv.set(self._key, payload)
        except StorageUnavailable as exc:
            logger.error("storage_write_failed", key=self._key, error=str(exc))
            raise

    @staticmethod
    def _new_domain(data: DomainInput, existing: list[Domain]) -> Domain:
        domain = Domain.new(data)
        ids = {d.id for d in existing}
        while domain.id in ids:
            domain = domain.model_copy(update={"id": generate_id()})
        return domain

    # -- lectura ------------------------------------------------------------

    def list(self) -> list[Domain]:
        return self._load()

    def get(self, domain_id: str) -> Domain | None:
        for domain in self._load():
            if domain.id == domain_id:
                return domain
        return None

    def find_duplicate(self, *, url: str, name: str | None = None) -> Domain | None:
        return find_duplicate(self._load(), url=url, name=name)

    # -- escritura ----------------------------------------------------------

    def add(self, data: DomainInput) -> Domain:
        """Crea el dominio o devuelve el existente (sin efectos) si es duplicado."""

        domains = self._load()
        existing = find_duplicate(domains, url=data.url, name=data.name)
        if existing is not None:
            logger.info("domain_duplicate", domain_id=existing.id, url=data.url)
            return existing

        domain = self._new_domain(data, domains)
        domains.append(domain)
        self._save(domains)
        logger.info("domain_added", domain_id=domain.id, url=domain.url)
        return domain

    def add_many(self, entries: Iterable[str | DomainInput]) -> list[Domain]:
        """Alta en lote. Un resultado por URL normalizada distinta, en orden de aparición."""

        domains = self._load()
        seen: set[str] = set()
        result: list[Domain] = []
        created = 0

        for entry in entries:
            data = coerce_entry(entry)
            if data is None:
                continue
            key = normalize_url(data.url)
            if key in seen:
                continue
            seen.add(key)

            existing = find_duplicate(domains, url=data.url, name=data.name)
            if existing is not None:
                result.append(existing)
                continue

            domain = self._new_domain(data, domains)
            domains.append(domain)
            result.append(domain)
            created += 1

        if created:
            self._save(domains)
        logger.info("domains_bulk_added", created=created, returned=len(result))
        return result

    def update(self, domain: Domain) -> Domain | None:
        """Reemplaza el registro con el mismo id. None = no encontrado (sin cambios)."""

        domains = self._load()
        for index, stored in enumerate(domains):
            if stored.id != domain.id:
                continue
            updated = domain.model_copy(
                update={
                    "created_at": stored.created_at,
                    "updated_at": utcnow(),
                    "remote_id": domain.remote_id or stored.remote_id,
                }
            )
            domains[index] = updated
            self._save(domains)
            return updated
        return None

    def upsert(self, domain: Domain) -> Domain:
        updated = self.update(domain)
        if updated is not None:
            return updated
        domains = self._load()
        created = domain.touch()
        domains.append(created)
        self._save(domains)
        return created

    def update_task(
        self,
        domain_id: str,
        task_id: str,
        patch: TaskPatch | dict[str, Any],
    ) -> Domain | None:
        if not isinstance(patch, TaskPatch):
            patch = TaskPatch.model_validate(patch)

        domains = self._load()
        for index, domain in enumerate(domains):
            if domain.id != domain_id:
                continue
            task = domain.find_task(task_id)
            if task is None:
                return None
            tasks = [patch.apply(t) if t.id == task_id else t for t in domain.tasks]
            updated = domain.model_copy(update={"tasks": tasks, "updated_at": utcnow()})
            domains[index] = updated
            self._save(domains)
            return updated
        return None

    def delete(self, domain_id: str) -> None:
        domains = self._load()
        remaining = [d for d in domains if d.id != domain_id]
        if len(remaining) != len(domains):
            self._save(remaining)

    def clear(self) -> None:
        self._kv.remove(self._key)

    # -- import/export ------------------------------------------------------

    def export_json(self) -> str:
        return dump_domains_json(self._load())

    def import_json(self, text: str) -> bool:
        """Reemplaza la colección completa. False (estado intacto) si el payload no es válido."""

        try:
            domains = parse_domains_json(text)
        except ImportFormatInvalid as exc:
            logger.error("import_rejected", error=str(exc))
            return False
        self._save(domains)
        logger.info("domains_imported", count=len(domains))
        return True
