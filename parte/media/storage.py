import shutil
import tempfile
from pathlib import Path

from parte.logging.logger import Log


class MediaStore:
    """Hash-keyed media tree plus a scratch area for job-owned temp files.

    Layout: ``{media_root}/{hash}/{collection}{suffix}``.
    """

    def __init__(self, media_root: Path, temp_root: Path) -> None:
        self._media_root = media_root
        self._temp_root = temp_root

    @property
    def temp_root(self) -> Path:
        return self._temp_root

    def path_for(self, notice_hash: str, collection: str, suffix: str) -> Path:
        return self._media_root / notice_hash / f"{collection}{suffix}"

    def store(self, notice_hash: str, collection: str, source: Path) -> Path:
        """Copy ``source`` into the notice's media folder, replacing any previous file."""
        target = self.path_for(notice_hash, collection, source.suffix.lower() or ".bin")
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(source, target)
        Log.debug(f"Stored {collection} for {notice_hash} at {target}")
        return target

    def temp_path(self, prefix: str, suffix: str) -> Path:
        """Reserve a unique empty file under the temp root."""
        self._temp_root.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            prefix=prefix, suffix=suffix, dir=self._temp_root, delete=False
        ) as handle:
            return Path(handle.name)

    @staticmethod
    def discard(path: Path | None) -> None:
        """Delete a temp file if it still exists."""
        if path is None:
            return
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            Log.warning(f"Could not delete temp file {path}: {exc}")
            return
        Log.debug(f"Deleted temp file {path}")
