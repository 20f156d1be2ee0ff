"""Local-disk file storage for uploaded documents.

Learn: Files live under <public_dir>/uploads/ and are named
"<random hex>_<original filename>" — the random prefix keeps two uploads of
"score.pdf" from overwriting each other, the suffix keeps the name readable.
The database stores the path relative to public_dir ("uploads/ab12_score.pdf").
Overlong names are shortened on disk, keeping their extension; the full
original name is kept on the document row.

Disk I/O runs in a worker thread so a large upload doesn't block the loop.
"""

import asyncio
import uuid
from pathlib import Path

from docshelf.config import settings
from docshelf.errors import NotFoundError

# Most filesystems cap a single path component at 255 bytes.
MAX_NAME_BYTES = 255


class LocalFileStorage:
    """Stores document bytes under a public root directory."""

    def __init__(self, public_dir: Path, uploads_subdir: str = "uploads"):
        self.public_dir = Path(public_dir)
        self.uploads_subdir = uploads_subdir

    @property
    def uploads_dir(self) -> Path:
        return self.public_dir / self.uploads_subdir

    def stored_name(self, original_filename: str) -> str:
        # Drop any directory part a client may have sent in the filename.
        base = Path(original_filename.replace("\\", "/")).name or "file"
        prefix = uuid.uuid4().hex
        return f"{prefix}_{_clamp_name(base, MAX_NAME_BYTES - len(prefix) - 1)}"

    async def save(self, data: bytes, original_filename: str) -> str:
        """Write bytes to a fresh file and return its relative path."""
        name = self.stored_name(original_filename)
        relative = f"{self.uploads_subdir}/{name}"
        await asyncio.to_thread(self._write, self.public_dir / relative, data)
        return relative

    def path_for(self, relative_path: str) -> Path:
        """Absolute path of a stored file. Paths escaping public_dir are rejected."""
        root = self.public_dir.resolve()
        path = (root / relative_path).resolve()
        if not path.is_relative_to(root):
            raise NotFoundError("Document not found")
        return path

    def exists(self, relative_path: str) -> bool:
        return self.path_for(relative_path).is_file()

    async def remove(self, relative_path: str) -> None:
        """Delete a stored file. Raises OSError (e.g. FileNotFoundError) on failure."""
        await asyncio.to_thread(self.path_for(relative_path).unlink)

    @staticmethod
    def _write(path: Path, data: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)


def get_storage() -> LocalFileStorage:
    """FastAPI dependency — storage rooted at the configured public dir."""
    return LocalFileStorage(settings.public_dir, settings.uploads_subdir)


def _clamp_name(name: str, limit: int) -> str:
    """Shorten name to at most `limit` UTF-8 bytes, keeping its extension."""
    if len(name.encode("utf-8")) <= limit:
        return name
    suffix = Path(name).suffix
    if len(suffix.encode("utf-8")) * 2 > limit:
        suffix = ""
    stem = name[: len(name) - len(suffix)]
    budget = limit - len(suffix.encode("utf-8"))
    stem = stem.encode("utf-8")[:budget].decode("utf-8", "ignore")
    return stem + suffix
