from __future__ import annotations

import re
import uuid
from datetime import datetime
from pathlib import Path

from app.services.errors import StoreFailure
from app.stores.base import DocumentStore


def _sanitize_filename(filename: str) -> str:
    """Return filename with spaces replaced by underscores and special chars removed.

    Args:
        filename: Original filename string.

    Returns:
        Sanitized filename safe for filesystem storage.
    """
    name = filename.replace(" ", "_")
    name = re.sub(r"[^\w.\-]", "", name)
    return name


class FileSystemDocumentStore(DocumentStore):
    """Store documents under a date-and-folder-partitioned directory tree.

    The destination path follows the pattern::

        root_dir/{year}/{month:02d}/{folder}/{uuid4}_{sanitized_filename}

    and the returned URL is that path relative to ``root_dir`` as a
    forward-slash string, e.g. ``"2026/03/TJPA-DIA-2026-0001/ab12_ne.pdf"``.
    """

    def __init__(self, root_dir: Path):
        self.root_dir = Path(root_dir)

    def put(self, data: bytes, filename: str, folder: str) -> str:
        now = datetime.now()
        safe_folder = _sanitize_filename(folder) or "geral"
        dest_dir = self.root_dir / str(now.year) / f"{now.month:02d}" / safe_folder
        safe_name = _sanitize_filename(filename) or "documento"
        dest_path = dest_dir / f"{uuid.uuid4().hex}_{safe_name}"
        try:
            dest_dir.mkdir(parents=True, exist_ok=True)
            dest_path.write_bytes(data)
        except OSError as exc:
            raise StoreFailure(f"Não foi possível gravar o documento '{filename}'.") from exc
        return dest_path.relative_to(self.root_dir).as_posix()

    def read(self, url: str) -> bytes:
        path = self._resolve(url)
        try:
            return path.read_bytes()
        except OSError as exc:
            raise StoreFailure(f"Documento '{url}' indisponível.") from exc

    def discard(self, url: str) -> None:
        self._resolve(url).unlink(missing_ok=True)

    def _resolve(self, url: str) -> Path:
        path = (self.root_dir / url).resolve()
        if self.root_dir.resolve() not in path.parents:
            raise StoreFailure(f"Caminho de documento inválido: '{url}'.")
        return path
