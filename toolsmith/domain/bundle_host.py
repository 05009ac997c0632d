"""
Filesystem bundle host.

Layout under the root:

    .releases/<slug>/<release>/index.html ...   immutable release directories
    <slug> -> .releases/<slug>/<release>         serving symlink

A publish writes a complete new release directory, then swaps the serving
symlink with os.replace, which is atomic on POSIX. A reader resolving
<slug> sees either the old release or the new one, never a partial write.
"""

import asyncio
import logging
import os
import shutil
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional, Protocol, runtime_checkable

from toolsmith.api.v1.exceptions import MaterializationError

logger = logging.getLogger(__name__)

RELEASES_DIR = ".releases"


@runtime_checkable
class BundleHost(Protocol):
    """Write/replace/delete a named bundle at a public address."""

    async def publish(self, slug: str, files: Dict[str, str]) -> str:
        """Replace the bundle served at `slug`. Returns its location."""
        ...

    async def remove(self, slug: str) -> None:
        ...

    async def exists(self, slug: str) -> bool:
        ...

    async def read(self, slug: str, name: str) -> Optional[str]:
        ...


class FilesystemBundleHost:
    """BundleHost backed by a local directory (served by a static web server)."""

    def __init__(self, root: Path, keep_releases: int = 1):
        self.root = Path(root)
        self.keep_releases = max(keep_releases, 1)

    def _serving_path(self, slug: str) -> Path:
        return self.root / slug

    def _release_root(self, slug: str) -> Path:
        return self.root / RELEASES_DIR / slug

    @staticmethod
    def _release_id() -> str:
        stamp = datetime.now(timezone.utc).strftime("%Y%m%d%H%M%S%f")
        return f"{stamp}-{uuid.uuid4().hex[:8]}"

    # ------------------------------------------------------------------
    # Synchronous implementations (run in a worker thread)
    # ------------------------------------------------------------------

    def _publish_sync(self, slug: str, files: Dict[str, str]) -> str:
        release_dir = self._release_root(slug) / self._release_id()
        release_dir.mkdir(parents=True, exist_ok=False)
        try:
            for name, content in files.items():
                target = release_dir / name
                target.parent.mkdir(parents=True, exist_ok=True)
                target.write_text(content, encoding="utf-8")
        except OSError:
            shutil.rmtree(release_dir, ignore_errors=True)
            raise

        serving = self._serving_path(slug)
        if serving.exists() and not serving.is_symlink():
            # Plain directory left by an older layout; cannot be swapped atomically
            shutil.rmtree(serving)

        tmp_link = self.root / f".{slug}.{uuid.uuid4().hex}.tmp"
        os.symlink(os.path.relpath(release_dir, self.root), tmp_link)
        try:
            os.replace(tmp_link, serving)
        except OSError:
            tmp_link.unlink(missing_ok=True)
            shutil.rmtree(release_dir, ignore_errors=True)
            raise

        self._prune_sync(slug, keep=release_dir.name)
        return str(serving)

    def _prune_sync(self, slug: str, keep: str) -> None:
        releases = sorted(
            (p for p in self._release_root(slug).iterdir() if p.is_dir() and p.name != keep),
            key=lambda p: p.name,
            reverse=True,
        )
        for stale in releases[self.keep_releases - 1:]:
            shutil.rmtree(stale, ignore_errors=True)

    def _remove_sync(self, slug: str) -> None:
        serving = self._serving_path(slug)
        if serving.is_symlink() or serving.is_file():
            serving.unlink()
        elif serving.is_dir():
            shutil.rmtree(serving)
        release_root = self._release_root(slug)
        if release_root.exists():
            shutil.rmtree(release_root)

    def _read_sync(self, slug: str, name: str) -> Optional[str]:
        path = self._serving_path(slug) / name
        if not path.is_file():
            return None
        return path.read_text(encoding="utf-8")

    # ------------------------------------------------------------------
    # Async surface
    # ------------------------------------------------------------------

    async def publish(self, slug: str, files: Dict[str, str]) -> str:
        try:
            location = await asyncio.to_thread(self._publish_sync, slug, files)
        except OSError as e:
            logger.error(f"Bundle publish failed for {slug}: {e}")
            raise MaterializationError(f"Could not write bundle for '{slug}': {e}")
        logger.info(f"Bundle published: {slug} -> {location}")
        return location

    async def remove(self, slug: str) -> None:
        try:
            await asyncio.to_thread(self._remove_sync, slug)
        except OSError as e:
            logger.error(f"Bundle removal failed for {slug}: {e}")
            raise MaterializationError(f"Could not remove bundle for '{slug}': {e}")
        logger.info(f"Bundle removed: {slug}")

    async def exists(self, slug: str) -> bool:
        return await asyncio.to_thread(self._serving_path(slug).exists)

    async def read(self, slug: str, name: str) -> Optional[str]:
        return await asyncio.to_thread(self._read_sync, slug, name)
