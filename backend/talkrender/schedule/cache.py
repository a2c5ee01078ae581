"""
Schedule cache.

Holds the most recently fetched catalog in memory, mirrored to disk
for cold starts.

Design rules:
- Memory copy is authoritative once populated
- Disk mirror is read only when memory is empty
- Refresh is a full replace, never a merge
- The new catalog is fully built before the in-memory reference is swapped
"""

import json
import logging
import os
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Optional, Tuple

import httpx

from .errors import FetchError, ScheduleFormatError
from .models import Catalog, ScheduleEvent

logger = logging.getLogger(__name__)


SCHEDULE_FILENAME = "schedule.json"


class ScheduleCache:
    """
    Process-wide schedule catalog with an on-disk mirror.

    One instance is created at startup and passed to every component
    that needs guid lookups.
    """

    def __init__(
        self,
        url: str,
        cache_dir: Path,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the cache.

        Args:
            url: Remote schedule feed URL
            cache_dir: Directory holding the disk mirror
            timeout: HTTP timeout in seconds
            transport: Optional httpx transport (tests inject a MockTransport)
        """
        self.url = url
        self.cache_dir = Path(cache_dir)
        self.timeout = timeout
        self._transport = transport
        self._catalog: Optional[Catalog] = None

    @property
    def mirror_path(self) -> Path:
        return self.cache_dir / SCHEDULE_FILENAME

    @property
    def fetched_at(self) -> Optional[datetime]:
        """When the in-memory catalog was fetched, None if nothing is loaded."""
        catalog = self._catalog
        return catalog.fetched_at if catalog else None

    async def refresh(self) -> Catalog:
        """
        Fetch the remote catalog and replace the cached one wholesale.

        The disk mirror is overwritten unconditionally.

        Returns:
            The freshly fetched catalog

        Raises:
            FetchError: On transport failure, non-success status or an unusable body
        """
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.get(self.url)
        except httpx.HTTPError as e:
            raise FetchError(self.url, str(e) or e.__class__.__name__) from e

        if not response.is_success:
            raise FetchError(self.url, response.reason_phrase or "unsuccessful response", response.status_code)

        try:
            document = response.json()
        except ValueError as e:
            raise FetchError(self.url, f"response is not JSON: {e}") from e

        try:
            catalog = Catalog.from_document(document)
        except ScheduleFormatError as e:
            raise FetchError(self.url, str(e)) from e

        try:
            self._write_mirror(document)
        except OSError as e:
            # Mirror is only read on cold start
            logger.error(f"[Schedule] Could not write mirror {self.mirror_path}: {e}")
        self._catalog = catalog

        logger.info(f"[Schedule] Fetched {len(catalog.events)} events from {self.url}")
        return catalog

    async def refresh_best_effort(self) -> bool:
        """
        Refresh for background callers (startup, timers).

        Failures are logged and swallowed.

        Returns:
            True if the refresh succeeded
        """
        try:
            await self.refresh()
            return True
        except FetchError as e:
            logger.error(f"[Schedule] Background refresh failed: {e}")
            return False

    def current(self) -> Optional[Catalog]:
        """
        Return the current catalog.

        Falls back to the disk mirror when memory is empty. A mirror that
        cannot be parsed is logged and treated as absent.
        """
        if self._catalog is not None:
            return self._catalog

        if not self.mirror_path.is_file():
            logger.warning(
                f"[Schedule] No schedule in memory and no mirror at {self.mirror_path}. "
                "Fetch the schedule first."
            )
            return None

        try:
            with open(self.mirror_path, "r", encoding="utf-8") as f:
                document = json.load(f)
            mtime = datetime.fromtimestamp(self.mirror_path.stat().st_mtime)
            catalog = Catalog.from_document(document, fetched_at=mtime)
        except (OSError, ValueError, ScheduleFormatError) as e:
            logger.error(f"[Schedule] Error parsing schedule mirror {self.mirror_path}: {e}")
            return None

        # A refresh may have landed while the mirror was being read
        if self._catalog is None:
            self._catalog = catalog
        return self._catalog

    def events(self) -> Tuple[ScheduleEvent, ...]:
        """All events of the current catalog, empty if none is available."""
        catalog = self.current()
        return catalog.events if catalog else ()

    def lookup(self, guid: str) -> Optional[ScheduleEvent]:
        """
        Resolve a guid to its scheduled event.

        Case-sensitive exact match, first hit wins. Returns None when
        no catalog is available or nothing matches.
        """
        catalog = self.current()
        if catalog is None:
            return None
        return catalog.find(guid)

    def _write_mirror(self, document) -> None:
        """Atomically replace the disk mirror."""
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.cache_dir, prefix=".schedule-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(document, f, indent=2)
            os.replace(tmp_name, self.mirror_path)
        except OSError:
            Path(tmp_name).unlink(missing_ok=True)
            raise
