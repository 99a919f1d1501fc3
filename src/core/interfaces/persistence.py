"""Contrato del estado compartido entre procesos."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from core.domain.models import CachedIdentity, HistoryRecord


@runtime_checkable
class SharedStateWriter(Protocol):
    """Destino del snapshot persistido (lo leen widgets/UI externos).

    Reglas de diseño:
    - Se escribe tras cada mutación del store.
    - El historial solo admite `append`.
    - Puede escribir en segundo plano; `close()` espera a que termine.
    """

    def save_identity(self, record: CachedIdentity) -> None:
        ...

    def append_history(self, record: HistoryRecord) -> None:
        ...

    def close(self) -> None:
        """Termina las escrituras pendientes."""
        ...
