"""Identidad de dominios: ids y normalización.

Por qué separado de los modelos:
- La detección de duplicados (store local y selector) compara siempre con las
  mismas reglas; una sola implementación evita divergencias.
"""

from __future__ import annotations

import re
import secrets
import string
from typing import Iterable, TypeVar

_ID_ALPHABET = string.ascii_lowercase + string.digits
_SCHEME_RE = re.compile(r"^https?://", re.IGNORECASE)

T = TypeVar("T")


def generate_id(length: int = 9) -> str:
    """Id corto y opaco (base36). No es un contrato: solo debe ser único en la práctica."""

    return "".join(secrets.choice(_ID_ALPHABET) for _ in range(length))


def normalize_url(url: str) -> str:
    """`https://Example.com/` -> `example.com` (sin esquema, sin `/` final, minúsculas)."""

    value = url.strip().lower()
    value = _SCHEME_RE.sub("", value)
    if value.endswith("/"):
        value = value[:-1]
    return value


def normalize_name(name: str) -> str:
    return name.strip().casefold()


def ensure_scheme(url: str) -> str:
    """Un host suelto (`a.com`) se guarda como `https://a.com`."""

    value = url.strip()
    if _SCHEME_RE.match(value):
        return value
    return f"https://{value}"


def find_duplicate(domains: Iterable[T], *, url: str, name: str | None = None) -> T | None:
    """Primer dominio con la misma URL normalizada o el mismo nombre (casefold)."""

    wanted_url = normalize_url(url)
    wanted_name = normalize_name(name) if name else None
    for domain in domains:
        if normalize_url(domain.url) == wanted_url:
            return domain
        if wanted_name is not None and normalize_name(domain.name) == wanted_name:
            return domain
    return None
