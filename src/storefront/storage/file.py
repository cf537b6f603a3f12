"""File based token storage for a single long-running process."""

import json
import logging
import os
from pathlib import Path
from typing import Any, Optional

from storefront.core.errors import StorageError
from storefront.core.settings import StorageBackend
from storefront.storage.base import TokenStore

logger = logging.getLogger("storage")

TOKENS_FILE = ".oauth-tokens.json"
STATE_FILE = ".oauth-state.json"


class FileTokenStore(TokenStore):
    """
    Keep tokens and state in two JSON files on local disk.

    Not shared between instances and without expiry; an empty object marks a
    cleared record.
    """

    backend = StorageBackend.FILE

    def __init__(self, directory: Path | str = ".", **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.directory = Path(directory)
        self.tokens_file = self.directory / TOKENS_FILE
        self.state_file = self.directory / STATE_FILE

    def _read(self, path: Path) -> Optional[dict[str, Any]]:
        if not path.exists():
            return None
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as e:
            logger.warning("Could not read %s: %s", path.name, e)
            return None
        return data if isinstance(data, dict) else None

    def _replace(self, path: Path, content: str) -> None:
        """Write to a private temp file next to ``path`` and rename it over ``path``."""
        temp_path = path.with_suffix(".tmp")
        try:
            fd = os.open(temp_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
            os.replace(temp_path, path)
        except OSError:
            if temp_path.exists():
                temp_path.unlink()
            raise

    def _write(self, path: Path, data: dict[str, Any]) -> None:
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            self._replace(path, json.dumps(data, indent=2))
        except OSError as e:
            raise StorageError(f"Could not write {path.name}: {e}") from e

    def _clear(self, path: Path) -> None:
        if not path.exists():
            return
        try:
            self._replace(path, "{}")
        except OSError as e:
            logger.warning("Could not clear %s: %s", path.name, e)

    def _read_tokens(self) -> Optional[dict[str, Any]]:
        return self._read(self.tokens_file)

    def _write_tokens(self, data: dict[str, Any]) -> None:
        self._write(self.tokens_file, data)

    def _delete_tokens(self) -> None:
        self._clear(self.tokens_file)

    def _read_state(self) -> Optional[dict[str, Any]]:
        return self._read(self.state_file)

    def _write_state(self, data: dict[str, Any]) -> None:
        self._write(self.state_file, data)

    def _delete_state(self) -> None:
        self._clear(self.state_file)
