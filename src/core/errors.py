"""Excepciones del Core.

Por qué una jerarquía propia:
- Cada fallo conocido (storage, remoto, import) tiene un punto donde se absorbe;
  un tipo explícito deja claro quién lo captura.
- El `context` viaja con la excepción para que el log tenga los mismos campos.
"""

from __future__ import annotations

from typing import Any


class DomainTrackerError(Exception):
    """Base de todos los errores de la aplicación.

    Attributes:
        message: mensaje legible
        context: campos adicionales (key, url, status_code...)
        original_error: excepción envuelta, si existe
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}
        self.original_error = original_error

    def __str__(self) -> str:
        base = self.message
        if self.context:
            ctx_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            base = f"{base} ({ctx_str})"
        if self.original_error:
            base = f"{base} [caused by: {type(self.original_error).__name__}: {self.original_error}]"
        return base


class StorageUnavailable(DomainTrackerError):
    """Persistencia local corrupta o ilegible (context: key, path)."""


class RemoteUnconfigured(DomainTrackerError):
    """Operación remota sin api key / base id."""


class RemoteRequestFailed(DomainTrackerError):
    """Respuesta no-2xx o fallo de transporte (context: method, url, status_code)."""


class ImportFormatInvalid(DomainTrackerError):
    """El payload de import no es un array de dominios válido."""
