# src/storage/scanner.py — v2
"""Store scanner — paginated object discovery.

Follows the store's continuation tokens until the listing is exhausted and
yields only objects whose extension is on the allow-list. Order is whatever
the store returns.

A listing that cannot complete raises ListingError: acting on a partial
listing is unsafe, so the whole run stops.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, AsyncIterator

from catalog_ingest.core.models import StorageObject
from catalog_ingest.storage.base_object_store import StoreError

if TYPE_CHECKING:
    from catalog_ingest.storage.base_object_store import BaseObjectStore

logger = logging.getLogger(__name__)

DEFAULT_EXTENSIONS: tuple[str, ...] = ("mp3", "wav")


class ListingError(Exception):
    """Raised when a listing page cannot be fetched."""

    def __init__(self, prefix: str, pages_read: int, reason: str) -> None:
        self.prefix = prefix
        self.pages_read = pages_read
        super().__init__(
            f"Listing of {prefix!r} failed after {pages_read} page(s): {reason}"
        )


class StoreScanner:
    """Scan an object store prefix for allowed media objects."""

    def __init__(
        self,
        store: BaseObjectStore,
        allowed_extensions: list[str] | tuple[str, ...] = DEFAULT_EXTENSIONS,
    ) -> None:
        self._store = store
        self._allowed = {ext.lower().lstrip(".") for ext in allowed_extensions}

    def is_allowed(self, obj: StorageObject) -> bool:
        return obj.extension in self._allowed

    async def scan(self, prefix: str) -> AsyncIterator[StorageObject]:
        """Yield allowed objects page by page. Each call restarts the listing.

        Raises:
            ListingError: If any page fails to load.
        """
        token: str | None = None
        pages = 0
        seen = 0
        kept = 0
        while True:
            try:
                page = await self._store.list_page(prefix, token)
            except StoreError as exc:
                raise ListingError(prefix, pages, exc.reason) from exc
            except Exception as exc:
                raise ListingError(prefix, pages, str(exc)) from exc

            pages += 1
            for obj in page.objects:
                seen += 1
                if self.is_allowed(obj):
                    kept += 1
                    yield obj
                else:
                    logger.debug("Skipping %s (extension not allowed)", obj.key)

            token = page.next_token
            if not token:
                break

        logger.info(
            "Scanned %s: %d page(s), %d object(s), %d with allowed extensions",
            prefix, pages, seen, kept,
        )

    async def collect(self, prefix: str) -> list[StorageObject]:
        """Materialize a full listing."""
        return [obj async for obj in self.scan(prefix)]
