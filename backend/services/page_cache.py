"""Per-page cache of the best bitmap rendered so far."""
import logging
from typing import Dict, Optional

from models.render import Bitmap, PageCacheEntry
from models.tier import Tier

logger = logging.getLogger(__name__)


class PageBitmapCache:
    """
    Holds the highest-tier bitmap per page.
    
    Tiers only move forward: an incoming bitmap at or below the recorded
    tier is discarded. One writer per page at a time is assumed.
    """
    
    def __init__(self):
        self._entries: Dict[int, PageCacheEntry] = {}
        self._bytes = 0
    
    def upgrade(self, page_index: int, bitmap: Bitmap) -> bool:
        """
        Store `bitmap` for the page if it raises the page's tier.
        
        Returns:
            True if applied, False if the bitmap was discarded
        """
        entry = self._entries.get(page_index)
        if entry is not None and entry.highest_tier is not None and bitmap.tier <= entry.highest_tier:
            logger.debug(
                f"Dropped {bitmap.tier.label} bitmap for page {page_index}, "
                f"already at {entry.highest_tier.label}"
            )
            return False
        
        if entry is not None and entry.bitmap is not None:
            self._bytes -= len(entry.bitmap.payload)
        self._entries[page_index] = PageCacheEntry(
            page_index=page_index,
            highest_tier=bitmap.tier,
            bitmap=bitmap
        )
        self._bytes += len(bitmap.payload)
        return True
    
    def get(self, page_index: int) -> Optional[PageCacheEntry]:
        return self._entries.get(page_index)
    
    def highest_tier(self, page_index: int) -> Optional[Tier]:
        entry = self._entries.get(page_index)
        return entry.highest_tier if entry else None
    
    def has_tier(self, page_index: int, tier: Tier) -> bool:
        """Whether the page already holds `tier` or better."""
        current = self.highest_tier(page_index)
        return current is not None and current >= tier
    
    def stats(self) -> Dict[str, int]:
        return {
            "pages": len(self._entries),
            "bytes": self._bytes,
        }
    
    def clear(self) -> None:
        self._entries.clear()
        self._bytes = 0
    
    def __len__(self) -> int:
        return len(self._entries)
