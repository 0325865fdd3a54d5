"""Backend selection: remote-primary, local-fallback.

The selector is the only component the CLI talks to for domain CRUD. It owns
an explicit `BackendState` (remote credentials + "using remote" flag) built
once at startup, and an in-memory working set that is a cache, never the
source of truth.

Policy:
- Reads try the remote service when configured; an empty or failed fetch
  falls back to the local store.
- Writes try the remote service first; an exception, a timeout, or a falsy
  result performs the equivalent local operation so the change is not lost.
- There is no reconciliation: a write that fell back to local is not replayed
  against the remote service later.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Iterable, TypeVar

import httpx
import structlog

from adapters.airtable_client import AirtableClient
from adapters.kv_store import JsonFileKeyValueStore
from adapters.local_store import LocalDomainStore, coerce_entry
from core.config import AppSettings, clear_remote_config, load_remote_config, save_remote_config
from core.domain.identity import find_duplicate, generate_id, normalize_url
from core.domain.models import Domain, DomainInput, RemoteConfig, TaskPatch
from core.errors import RemoteUnconfigured
from core.interfaces.storage import DomainStore, KeyValueStore, RemoteDomainGateway

logger = structlog.get_logger(__name__)

R = TypeVar("R")


@dataclass
class BackendState:
    """Process-wide backend configuration, held by one selector instance."""

    remote_config: RemoteConfig | None = None

    @property
    def using_remote(self) -> bool:
        return self.remote_config is not None and self.remote_config.is_complete


@dataclass
class SelectorHooks:
    """Optional callbacks for UI layers (inline warnings)."""

    warning: Callable[[str], None] | None = None


@dataclass
class BackendSelector:
    store: DomainStore
    remote: RemoteDomainGateway
    state: BackendState = field(default_factory=BackendState)
    kv: KeyValueStore | None = None
    hooks: SelectorHooks = field(default_factory=SelectorHooks)
    remote_timeout_seconds: float | None = None
    _domains: list[Domain] = field(default_factory=list, init=False, repr=False)
    _loaded: bool = field(default=False, init=False, repr=False)

    def __post_init__(self) -> None:
        self.remote.set_config(self.state.remote_config)

    @classmethod
    def from_settings(
        cls,
        settings: AppSettings | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        hooks: SelectorHooks | None = None,
    ) -> BackendSelector:
        """Wire the default adapters and restore persisted remote credentials."""

        settings = settings or AppSettings()
        kv = JsonFileKeyValueStore(settings.resolved_data_dir())
        config = load_remote_config(kv)
        return cls(
            store=LocalDomainStore(kv),
            remote=AirtableClient(settings, config, transport=transport),
            state=BackendState(config),
            kv=kv,
            hooks=hooks or SelectorHooks(),
            remote_timeout_seconds=settings.remote_operation_timeout_seconds,
        )

    # -- helpers -------------------------------------------------------------

    @property
    def domains(self) -> list[Domain]:
        return list(self._domains)

    def _warn(self, message: str) -> None:
        if self.hooks.warning:
            self.hooks.warning(message)

    async def _try_remote(self, operation: str, call: Callable[[], Awaitable[R]]) -> R | None:
        try:
            return await asyncio.wait_for(call(), timeout=self.remote_timeout_seconds)
        except asyncio.TimeoutError:
            logger.error("remote_timeout", operation=operation, timeout=self.remote_timeout_seconds)
        except Exception as exc:
            logger.error("remote_operation_raised", operation=operation, error=str(exc))
        return None

    def _fallback(self, operation: str) -> None:
        logger.warning("remote_fallback", operation=operation)
        self._warn(f"Remote {operation} failed; the change was saved locally only.")

    def _cached(self, domain_id: str) -> Domain | None:
        for domain in self._domains:
            if domain.id == domain_id:
                return domain
        return None

    def _lookup(self, domain_id: str) -> Domain | None:
        return self._cached(domain_id) or self.store.get(domain_id)

    async def _ensure_loaded(self) -> None:
        """Remote mode: duplicate checks and lookups need the remote rows in the cache."""

        if self.state.using_remote and not self._loaded:
            await self.load()

    def _remember(self, domain: Domain) -> None:
        for index, cached in enumerate(self._domains):
            if cached.id == domain.id:
                self._domains[index] = domain
                return
        self._domains.append(domain)

    def _forget(self, domain_id: str) -> None:
        self._domains = [d for d in self._domains if d.id != domain_id]

    def _new_domain(self, data: DomainInput) -> Domain:
        domain = Domain.new(data)
        ids = {d.id for d in self._domains}
        while domain.id in ids:
            domain = domain.model_copy(update={"id": generate_id()})
        return domain

    # -- reads ---------------------------------------------------------------

    async def load(self) -> list[Domain]:
        """Refresh the working set: remote when it yields data, local otherwise."""

        if self.state.using_remote:
            remote = await self._try_remote("fetch", self.remote.fetch_domains)
            if remote:
                self._domains = list(remote)
                self._loaded = True
                return self.domains
            logger.info("remote_fetch_empty_or_failed")
        self._domains = self.store.list()
        self._loaded = True
        return self.domains

    # -- writes --------------------------------------------------------------

    async def add_domain(self, data: DomainInput) -> Domain:
        await self._ensure_loaded()
        existing = find_duplicate(self._domains, url=data.url, name=data.name)
        if existing is not None:
            return existing

        if self.state.using_remote:
            candidate = self._new_domain(data)
            created = await self._try_remote("create", lambda: self.remote.create_domain(candidate))
            if created:
                self._remember(created)
                return created
            self._fallback("create")

        domain = self.store.add(data)
        self._remember(domain)
        return domain

    async def add_domains(self, entries: Iterable[str | DomainInput]) -> list[Domain]:
        """Bulk add with the same duplicate policy as `add_domain`."""

        if not self.state.using_remote:
            result = self.store.add_many(entries)
            for domain in result:
                self._remember(domain)
            return result

        await self._ensure_loaded()
        seen: set[str] = set()
        result: list[Domain] = []
        pending: list[Domain] = []
        for entry in entries:
            data = coerce_entry(entry)
            if data is None:
                continue
            key = normalize_url(data.url)
            if key in seen:
                continue
            seen.add(key)
            existing = find_duplicate(self._domains + pending, url=data.url, name=data.name)
            if existing is not None:
                result.append(existing)
                continue
            candidate = self._new_domain(data)
            pending.append(candidate)
            result.append(candidate)

        if pending:
            created = await self._try_remote("create", lambda: self.remote.create_domains(pending)) or []
            by_id = {d.id: d for d in created}
            missing = [d for d in pending if d.id not in by_id]
            if missing:
                self._fallback("create")
                for domain in missing:
                    by_id[domain.id] = self.store.upsert(domain)
            result = [by_id.get(d.id, d) for d in result]

        for domain in result:
            self._remember(domain)
        return result

    async def update_domain(self, domain: Domain) -> Domain | None:
        """Replace a domain. None when the record is unknown to the active backend."""

        if self.state.using_remote:
            await self._ensure_loaded()
            stored = self._lookup(domain.id)
            if stored is None:
                logger.info("domain_not_found", domain_id=domain.id)
                return None
            # createdAt is immutable; the stored value wins over the caller's.
            candidate = domain.model_copy(
                update={
                    "created_at": stored.created_at,
                    "remote_id": domain.remote_id or stored.remote_id,
                }
            ).touch()
            updated = await self._try_remote("update", lambda: self.remote.update_domain(candidate))
            if updated:
                self._remember(updated)
                return updated
            self._fallback("update")
            shadow = self.store.upsert(candidate)
            self._remember(shadow)
            return shadow

        updated = self.store.update(domain)
        if updated is not None:
            self._remember(updated)
        return updated

    async def update_task(
        self,
        domain_id: str,
        task_id: str,
        patch: TaskPatch,
    ) -> Domain | None:
        """Merge `patch` into one task. None when the domain or task is unknown."""

        if self.state.using_remote:
            await self._ensure_loaded()
            current = self._lookup(domain_id)
            if current is None or current.find_task(task_id) is None:
                return None
            tasks = [patch.apply(t) if t.id == task_id else t for t in current.tasks]
            return await self.update_domain(current.model_copy(update={"tasks": tasks}))

        updated = self.store.update_task(domain_id, task_id, patch)
        if updated is not None:
            self._remember(updated)
        return updated

    async def toggle_task_inline(self, domain_id: str, task_id: str) -> Domain | None:
        """Flip one checkbox without opening an editor."""

        await self._ensure_loaded()
        current = self._lookup(domain_id)
        task = current.find_task(task_id) if current else None
        if task is None:
            return None
        return await self.update_task(domain_id, task_id, TaskPatch(completed=not task.completed))

    async def apply_task_edit(self, domain_id: str, task_id: str, patch: TaskPatch) -> Domain | None:
        """Editor path: completion and notes chosen explicitly by the caller."""

        return await self.update_task(domain_id, task_id, patch)

    async def delete_domain(self, domain_id: str) -> None:
        if self.state.using_remote:
            await self._ensure_loaded()
            cached = self._lookup(domain_id)
            remote_id = cached.remote_id if cached else None
            deleted = await self._try_remote(
                "delete",
                lambda: self.remote.delete_domain(domain_id, remote_id=remote_id),
            )
            if not deleted:
                self._fallback("delete")

        # The local shadow never keeps a record the user deleted.
        self.store.delete(domain_id)
        self._forget(domain_id)

    # -- backend switching ---------------------------------------------------

    async def enable_remote(self, config: RemoteConfig) -> list[Domain]:
        """Switch to remote storage: migrate local data once, persist credentials, reload."""

        if not config.is_complete:
            raise RemoteUnconfigured("API key and base id are required")

        self.remote.set_config(config)
        migrated = await self._try_remote("migrate", lambda: self.remote.migrate_from_store(self.store)) or []
        if self.kv is not None:
            save_remote_config(self.kv, config)
        self.state = BackendState(config)
        await self.load()
        logger.info("remote_enabled", migrated=len(migrated), table=config.table_name)
        return migrated

    async def disable_remote(self) -> None:
        if self.kv is not None:
            clear_remote_config(self.kv)
        self.state = BackendState()
        self.remote.set_config(None)
        await self.load()
