"""Modelos del dominio (Pydantic v2).

Por qué Pydantic en el dominio:
- Validación en el borde: import JSON, filas remotas y entrada de la CLI pasan
  por el mismo contrato.
- Las claves camelCase (`createdAt`, `remoteId`) se mantienen en disco y en el
  servicio remoto sin ensuciar el código Python.

Nota:
- Estos modelos describen *qué* es un dominio, no *dónde* se guarda.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field, field_validator
from pydantic.alias_generators import to_camel
from pydantic.config import ConfigDict

from core.domain.identity import ensure_scheme, generate_id, normalize_url
from core.domain.tasks import calculate_progress, coerce_tasks, default_task_dicts


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Task(BaseModel):
    """Un ítem del checklist de onboarding."""

    model_config = ConfigDict(extra="ignore")

    id: str = Field(..., min_length=1, description="Identidad de la tarea dentro del dominio.")
    name: str = Field(..., description="Etiqueta visible (p.ej. 'GSC/CF Setup').")
    completed: bool = Field(default=False)
    notes: str | None = Field(default=None, max_length=10_000)


class TaskPatch(BaseModel):
    """Cambios permitidos sobre una tarea existente.

    Por qué un modelo aparte:
    - `id` y `name` son inmutables tras la creación; solo `completed`/`notes`
      pueden cambiar.
    """

    model_config = ConfigDict(extra="forbid")

    completed: bool | None = None
    notes: str | None = None

    def apply(self, task: Task) -> Task:
        return task.model_copy(update=self.model_dump(exclude_none=True))


class DomainInput(BaseModel):
    """Datos que aporta el usuario al crear un dominio."""

    name: str = Field(..., min_length=1, max_length=256)
    url: str = Field(..., min_length=1, max_length=2048)
    da: int | None = Field(default=None, ge=0, le=100, description="Domain Authority.")
    dr: int | None = Field(default=None, ge=0, le=100, description="Domain Rating.")

    @classmethod
    def from_url(cls, raw: str) -> DomainInput:
        """Alta rápida desde una URL suelta: nombre = URL normalizada."""

        return cls(name=normalize_url(raw), url=ensure_scheme(raw))


class Domain(BaseModel):
    """Agregado principal: un sitio con su checklist.

    Por qué `tasks` es siempre lista:
    - Es la forma canónica. El mapa legacy `{taskKey: bool}` se convierte al
      validar (ver `core.domain.tasks`).
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=256)
    url: str = Field(..., min_length=1, max_length=2048)
    da: int | None = Field(default=None, ge=0, le=100)
    dr: int | None = Field(default=None, ge=0, le=100)
    tasks: list[Task] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    remote_id: str | None = Field(
        default=None,
        description="Id nativo de la fila remota (cache para update/delete).",
    )

    @field_validator("tasks", mode="before")
    @classmethod
    def _accept_legacy_tasks(cls, value: Any) -> Any:
        return coerce_tasks(value)

    @classmethod
    def new(cls, data: DomainInput) -> Domain:
        """Dominio nuevo: id generado, checklist por defecto, timestamps = ahora."""

        now = utcnow()
        return cls(
            id=generate_id(),
            name=data.name,
            url=data.url,
            da=data.da,
            dr=data.dr,
            tasks=default_task_dicts(),
            created_at=now,
            updated_at=now,
        )

    @property
    def progress(self) -> int:
        return calculate_progress(self.tasks)

    @property
    def completed_count(self) -> int:
        return sum(1 for t in self.tasks if t.completed)

    def find_task(self, task_id: str) -> Task | None:
        for task in self.tasks:
            if task.id == task_id:
                return task
        return None

    def touch(self) -> Domain:
        return self.model_copy(update={"updated_at": utcnow()})

    def to_json_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class RemoteConfig(BaseModel):
    """Credenciales del servicio remoto, persistidas como `{apiKey, baseId, tableName}`."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    api_key: str = Field(default="", description="Token personal (Bearer).")
    base_id: str = Field(default="", description="Contenedor remoto (base).")
    table_name: str = Field(default="Domains", min_length=1)

    @property
    def is_complete(self) -> bool:
        return bool(self.api_key.strip()) and bool(self.base_id.strip())
