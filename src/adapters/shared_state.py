"""Estado compartido entre procesos (cache de identidad + historial).

Por qué JSON:
- Otros procesos (widgets, barra de menú) leen el registro sin importar este
  paquete; las claves son estables (`cachedExternalIP`, `connectionType`, ...).
- El historial es un fichero de texto append-only: una línea `nueva, anterior`.

Por qué `QueuedStateWriter`:
- El store publica en el event loop; las escrituras a disco van a un único
  hilo, en orden de llegada, así el último snapshot es el último en disco.
"""

from __future__ import annotations

import json
import logging
import os
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import Any, Callable

from pydantic import ValidationError

from core.config import AppSettings
from core.domain.models import CachedIdentity, HistoryRecord
from core.interfaces.persistence import SharedStateWriter

logger = logging.getLogger(__name__)

IDENTITY_FILENAME = "shared_state.json"
HISTORY_FILENAME = "history.txt"


class SharedStateFile:
    def __init__(self, state_dir: Path) -> None:
        self._state_dir = state_dir

    @classmethod
    def from_settings(cls, settings: AppSettings | None = None) -> "SharedStateFile":
        settings = settings or AppSettings()
        return cls(settings.resolved_state_dir())

    @property
    def identity_path(self) -> Path:
        return self._state_dir / IDENTITY_FILENAME

    @property
    def history_path(self) -> Path:
        return self._state_dir / HISTORY_FILENAME

    def save_identity(self, record: CachedIdentity) -> None:
        """Escribe el registro de forma atómica (tmp + replace)."""

        self._state_dir.mkdir(parents=True, exist_ok=True)
        payload = record.model_dump(mode="json", by_alias=True)
        tmp = self.identity_path.with_suffix(".json.tmp")
        tmp.write_text(
            json.dumps(payload, ensure_ascii=False, indent=2, sort_keys=True) + "\n",
            encoding="utf-8",
        )
        os.replace(tmp, self.identity_path)

    def append_history(self, record: HistoryRecord) -> None:
        self._state_dir.mkdir(parents=True, exist_ok=True)
        with self.history_path.open("a", encoding="utf-8") as fh:
            fh.write(f"{record}\n")

    def close(self) -> None:
        pass

    def read_identity(self) -> CachedIdentity | None:
        try:
            data = json.loads(self.identity_path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            return None
        try:
            return CachedIdentity.model_validate(data)
        except ValidationError:
            return None

    def read_history(self) -> list[str]:
        try:
            text = self.history_path.read_text(encoding="utf-8")
        except OSError:
            return []
        return [line for line in text.splitlines() if line.strip()]


def _log_write_failure(future: Future[None]) -> None:
    exc = future.exception()
    if exc is not None:
        logger.warning("Could not write shared state: %s", exc)


class QueuedStateWriter:
    """Envuelve otro writer y ejecuta sus escrituras fuera del event loop."""

    def __init__(self, writer: SharedStateWriter) -> None:
        self._writer = writer
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="netident-state")

    def save_identity(self, record: CachedIdentity) -> None:
        self._submit(self._writer.save_identity, record)

    def append_history(self, record: HistoryRecord) -> None:
        self._submit(self._writer.append_history, record)

    def close(self) -> None:
        self._executor.shutdown(wait=True)
        self._writer.close()

    def _submit(self, write: Callable[[Any], None], record: CachedIdentity | HistoryRecord) -> None:
        try:
            future = self._executor.submit(write, record)
        except RuntimeError:
            logger.warning("State writer closed, dropping %s", type(record).__name__)
            return
        future.add_done_callback(_log_write_failure)
