import logging
import re
import tempfile
from pathlib import Path

from sdcat.domain.selfdescription.port.storage import BlobStoragePort
from sdcat.domain.shared.error import ConflictError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

_HASH_RE = re.compile(r"^[0-9a-fA-F]{8,128}$")


class LocalBlobStorageAdapter(BlobStoragePort):
    """Local filesystem implementation of BlobStoragePort.

    Documents live at ``<base>/<hash[:2]>/<hash>``.
    """

    def __init__(self, base_path: str) -> None:
        self.base_path = Path(base_path).expanduser()
        self.base_path.mkdir(parents=True, exist_ok=True)

    def _path(self, hash: str) -> Path:
        """Resolve the document path for a hash, rejecting anything that is not hex."""
        if not _HASH_RE.match(hash):
            raise ValidationError(f"Invalid content hash: {hash!r}", field="hash")
        key = hash.lower()
        return self.base_path / key[:2] / key

    async def read_file(self, hash: str) -> bytes:
        target = self._path(hash)
        if not target.exists():
            raise NotFoundError(f"No document stored for hash {hash}")
        return target.read_bytes()

    async def store_file(self, hash: str, content: bytes) -> None:
        target = self._path(hash)
        if target.exists():
            raise ConflictError(f"A document is already stored for hash {hash}")
        target.parent.mkdir(parents=True, exist_ok=True)

        # Atomic write: write to temp file then rename
        fd, tmp_path = tempfile.mkstemp(dir=target.parent)
        try:
            with open(fd, "wb") as f:
                f.write(content)
            Path(tmp_path).rename(target)
        except Exception:
            Path(tmp_path).unlink(missing_ok=True)
            raise
        logger.debug("Stored document %s (%d bytes)", hash, len(content))

    async def delete_file(self, hash: str) -> None:
        target = self._path(hash)
        try:
            target.unlink()
        except FileNotFoundError:
            raise NotFoundError(f"No document stored for hash {hash}") from None
