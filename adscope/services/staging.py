"""Transient on-disk staging for uploads, scoped to a single request."""

import logging
import time
import uuid
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from adscope.config import Settings, get_settings
from adscope.exceptions import CleanupFailure, StagingFailure

logger = logging.getLogger(__name__)

RESTRICTED_HOST_ROOT = Path("/tmp")

# Staged names are "<time_ns>-<8 hex>-<basename>" and must fit in NAME_MAX (255 bytes)
MAX_NAME_BYTES = 200
MAX_SUFFIX_BYTES = 16


@dataclass(frozen=True)
class StagingRoot:
    path: Path
    # A fixed root is provided by the host and only needs to be written to
    fixed: bool = False


@dataclass(frozen=True)
class StagedMedia:
    path: Path
    original_name: str


def resolve_staging_root(settings: Settings) -> StagingRoot:
    """Pick the staging root for this process.

    Serverless hosts only allow writes under /tmp; everywhere else the
    configured directory is used and created on demand.
    """
    if settings.vercel or settings.aws_lambda_function_name:
        return StagingRoot(RESTRICTED_HOST_ROOT, fixed=True)
    return StagingRoot(settings.staging_dir, fixed=settings.staging_dir_fixed)


def _safe_name(suggested_name: str) -> str:
    """Reduce an uploaded name to a short basename usable inside the staging root."""
    name = Path(suggested_name.replace("\\", "/").replace("\x00", "")).name or "upload"
    if len(name.encode()) <= MAX_NAME_BYTES:
        return name
    # Keep the extension, shorten the stem
    suffix = Path(name).suffix
    if len(suffix.encode()) > MAX_SUFFIX_BYTES:
        suffix = ""
    stem = name[: len(name) - len(suffix)]
    budget = MAX_NAME_BYTES - len(suffix.encode())
    return stem.encode()[:budget].decode(errors="ignore") + suffix


class MediaStager:
    def __init__(self, root: StagingRoot):
        self.root = root

    def _ensure_root(self) -> None:
        try:
            self.root.path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            if self.root.fixed:
                logger.warning(
                    "staging_root_mkdir_failed",
                    extra={"path": str(self.root.path), "error": str(e)},
                )
                return
            raise StagingFailure(f"Cannot create staging directory {self.root.path}: {e}") from e

    def stage(self, data: bytes, suggested_name: str) -> StagedMedia:
        """Write upload bytes to a uniquely named file under the staging root."""
        self._ensure_root()
        file_name = f"{time.time_ns()}-{uuid.uuid4().hex[:8]}-{_safe_name(suggested_name)}"
        path = self.root.path / file_name
        try:
            path.write_bytes(data)
        except OSError as e:
            raise StagingFailure(f"Cannot write upload to {path}: {e}") from e
        logger.debug("media_staged", extra={"path": str(path), "size": len(data)})
        return StagedMedia(path=path, original_name=suggested_name)

    def release(self, media: StagedMedia) -> None:
        """Remove a staged file. Already-removed files are not an error."""
        try:
            media.path.unlink(missing_ok=True)
        except OSError as e:
            raise CleanupFailure(f"Cannot remove staged file {media.path}: {e}") from e
        logger.debug("media_released", extra={"path": str(media.path)})

    def exists(self, media: StagedMedia) -> bool:
        return media.path.exists()


@lru_cache
def get_stager() -> MediaStager:
    return MediaStager(resolve_staging_root(get_settings()))
