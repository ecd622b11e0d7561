"""Rendering data models."""
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .tier import Tier

@dataclass(frozen=True)
class PageSize:
    """Native size of a page in document units."""
    width: float
    height: float
    
    @property
    def aspect(self) -> float:
        return self.width / self.height
    
    @property
    def is_landscape(self) -> bool:
        return self.width > self.height

@dataclass(frozen=True)
class RenderRequest:
    """A request to rasterize one page at one tier."""
    page_index: int  # 1-indexed
    tier: Tier
    target_css_width: Optional[float] = None

@dataclass
class Bitmap:
    """An encoded raster of one page."""
    page_index: int
    tier: Tier
    pixel_width: int
    pixel_height: int
    payload: bytes  # JPEG bytes

@dataclass
class RenderFailure:
    """Result of a rasterization that did not produce a bitmap."""
    page_index: int
    tier: Tier
    cause: str

@dataclass
class PageCacheEntry:
    """Highest-tier bitmap rendered so far for a page."""
    page_index: int
    highest_tier: Optional[Tier]
    bitmap: Optional[Bitmap]

class PageState(Enum):
    """Progress of a single page through the render pipeline."""
    NOT_RENDERED = "not_rendered"
    PLACEHOLDER = "placeholder"
    PREVIEW_RENDERED = "preview_rendered"
    UPGRADED = "upgraded"
    CANCELLED = "cancelled"
