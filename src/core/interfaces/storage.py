"""Contratos de persistencia.

Por qué Protocol:
- El selector de backend (core) no conoce ficheros ni HTTP; solo estos
  contratos estructurales.
- Los tests pueden inyectar fakes sin herencia.
"""

from __future__ import annotations

from typing import Iterable, Protocol, runtime_checkable

from core.domain.models import Domain, DomainInput, RemoteConfig, TaskPatch


@runtime_checkable
class KeyValueStore(Protocol):
    """Almacén durable clave -> texto (equivalente a un localStorage)."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


@runtime_checkable
class DomainStore(Protocol):
    """Store local, síncrono y siempre disponible."""

    def list(self) -> list[Domain]: ...

    def get(self, domain_id: str) -> Domain | None: ...

    def add(self, data: DomainInput) -> Domain: ...

    def add_many(self, entries: Iterable[str | DomainInput]) -> list[Domain]: ...

    def update(self, domain: Domain) -> Domain | None: ...

    def upsert(self, domain: Domain) -> Domain: ...

    def update_task(self, domain_id: str, task_id: str, patch: TaskPatch) -> Domain | None: ...

    def delete(self, domain_id: str) -> None: ...

    def clear(self) -> None: ...


@runtime_checkable
class RemoteDomainGateway(Protocol):
    """Backend remoto opcional.

    Reglas de diseño:
    - Todos los métodos son asíncronos (I/O HTTP).
    - No lanzan excepciones hacia fuera: devuelven `[]` / None / False.
    """

    @property
    def is_configured(self) -> bool: ...

    def set_config(self, config: RemoteConfig | None) -> None: ...

    async def fetch_domains(self) -> list[Domain]: ...

    async def create_domain(self, domain: Domain) -> Domain | None: ...

    async def create_domains(self, domains: list[Domain]) -> list[Domain]: ...

    async def update_domain(self, domain: Domain) -> Domain | None: ...

    async def delete_domain(self, domain_id: str, *, remote_id: str | None = None) -> bool: ...

    async def migrate_from_store(self, store: DomainStore) -> list[Domain]: ...
