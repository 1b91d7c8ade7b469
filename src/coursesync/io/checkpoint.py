"""JSON persistence for workflow checkpoints."""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import ValidationError

from coursesync.core.models import Checkpoint


class CheckpointStore:
    """Store a single :class:`Checkpoint` as a JSON document on disk."""

    def __init__(self, path: Path) -> None:
        """Bind the store to ``path``; the file is created on first save."""
        self._path = Path(path)

    @property
    def path(self) -> Path:
        """Return the checkpoint file location."""
        return self._path

    def exists(self) -> bool:
        """Return whether a checkpoint is currently stored."""
        return self._path.is_file()

    def load(self) -> Checkpoint | None:
        """Return the stored checkpoint, or ``None`` when there is none.

        Raises:
            ValueError: when the file cannot be read or does not hold a valid checkpoint.

        """
        if not self.exists():
            return None
        try:
            raw = self._path.read_text(encoding="utf-8")
        except OSError as exc:
            msg = f"Unable to read checkpoint {self._path}: {exc}"
            raise ValueError(msg) from exc
        try:
            return Checkpoint.model_validate_json(raw)
        except ValidationError as exc:
            msg = f"Corrupt checkpoint {self._path}: {exc.error_count()} validation error(s)"
            raise ValueError(msg) from exc

    def save(self, checkpoint: Checkpoint) -> None:
        """Atomically replace the stored checkpoint."""
        self._path.parent.mkdir(parents=True, exist_ok=True)
        temporary = self._path.with_name(self._path.name + ".tmp")
        temporary.write_text(checkpoint.model_dump_json(indent=2) + "\n", encoding="utf-8")
        os.replace(temporary, self._path)

    def clear(self) -> None:
        """Delete the stored checkpoint if present."""
        self._path.unlink(missing_ok=True)


__all__ = ["CheckpointStore"]
