"""Master model repository — persists the model as a single JSON document.

Every save rewrites the whole file through a temporary file in the same
directory followed by ``os.replace``, so readers never observe a partial
write.
"""

import json
import logging
import os
import pathlib
import tempfile

from app.errors import PersistenceError
from app.master.model import MasterModel

logger = logging.getLogger("strategyforge.repos")

DEFAULT_MODE = 0o644


class MasterModelRepo:
    """File-backed storage for the ``MasterModel``.

    Args:
        path: Location of the JSON document (parent directories are created
              on first save).
    """

    def __init__(self, path: str | os.PathLike) -> None:
        self._path = pathlib.Path(path)

    @property
    def path(self) -> pathlib.Path:
        return self._path

    def load(self) -> MasterModel:
        """Read the persisted model.

        A missing, unreadable, or malformed file yields an empty model.
        """
        if not self._path.exists():
            return MasterModel()
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
            return MasterModel.from_dict(data)
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as exc:
            logger.warning(
                "Could not read master model from %s (%s); starting empty",
                self._path, exc,
            )
            return MasterModel()

    def save(self, model: MasterModel) -> None:
        """Atomically replace the persisted document with *model*.

        Raises:
            PersistenceError: The document could not be written.
        """
        payload = json.dumps(model.to_dict(), indent=2) + "\n"
        tmp_name = None
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=self._path.parent,
                prefix=f".{self._path.name}.",
                suffix=".tmp",
                delete=False,
            ) as fh:
                tmp_name = fh.name
                fh.write(payload)
                fh.flush()
                os.fsync(fh.fileno())
            os.chmod(tmp_name, self._file_mode())
            os.replace(tmp_name, self._path)
        except OSError as exc:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            logger.error("Failed to persist master model to %s: %s", self._path, exc)
            raise PersistenceError(f"Failed to write {self._path}: {exc}") from exc

    def _file_mode(self) -> int:
        # Temp files are created 0600; keep the existing document's mode.
        try:
            return self._path.stat().st_mode & 0o777
        except FileNotFoundError:
            return DEFAULT_MODE
