"""
Tier policy for page rasterization.

Maps a quality tier, the device pixel density and the css width a page is
displayed at to the pixel width it should be rasterized at. This is the
single place where sharpness is traded against memory.
"""

import logging
import math
from typing import Optional

from config import (
    LARGE_DOCUMENT_SHRINK,
    MAX_DEVICE_PIXEL_RATIO,
    MAX_SIDE,
    NARROW_FALLBACK_BASE,
    WIDE_FALLBACK_BASE,
    WIDE_VIEWPORT_MIN,
)
from models.tier import Tier

logger = logging.getLogger(__name__)


class TierPolicy:
    """
    Pure resolver from (tier, density, css width) to target pixel width.
    
    Multipliers by tier:
    - PREVIEW: 1.0, density ignored (speed over sharpness)
    - AUTO: 1.2, or 1.5 on displays with density >= 2
    - HIGH: max(1.6, density)
    - RETINA: max(2.0, density * 1.5)
    """
    
    def __init__(self, max_side: int = MAX_SIDE, max_density: float = MAX_DEVICE_PIXEL_RATIO):
        self.max_side = max_side
        self.max_density = max_density
    
    def clamp_density(self, device_pixel_ratio: Optional[float]) -> float:
        """Clamp density into (0, max_density]; unknown or invalid means 1.0."""
        if not device_pixel_ratio or device_pixel_ratio <= 0:
            return 1.0
        return min(float(device_pixel_ratio), self.max_density)
    
    @staticmethod
    def fallback_base(viewport_width: float) -> float:
        """Css width to assume when the display width of a page is unknown."""
        if viewport_width >= WIDE_VIEWPORT_MIN:
            return WIDE_FALLBACK_BASE
        return NARROW_FALLBACK_BASE
    
    @staticmethod
    def preview_shrink(page_count: Optional[int]) -> float:
        """Preview base factor for large documents, 1.0 for small ones."""
        if page_count is None:
            return 1.0
        for threshold, factor in LARGE_DOCUMENT_SHRINK:
            if page_count > threshold:
                return factor
        return 1.0
    
    def multiplier(self, tier: Tier, device_pixel_ratio: Optional[float]) -> float:
        density = self.clamp_density(device_pixel_ratio)
        if tier == Tier.PREVIEW:
            return 1.0
        if tier == Tier.AUTO:
            return 1.5 if density >= 2 else 1.2
        if tier == Tier.HIGH:
            return max(1.6, density)
        return max(2.0, density * 1.5)
    
    def resolve(
        self,
        tier: Tier,
        device_pixel_ratio: Optional[float],
        viewport_width: float,
        target_css_width: Optional[float] = None,
        page_count: Optional[int] = None
    ) -> int:
        """
        Resolve the target raster width in pixels.
        
        Args:
            tier: Requested quality tier
            device_pixel_ratio: Display density (clamped to max_density)
            viewport_width: Viewport width in css px, used for the fallback base
            target_css_width: Css width the page is displayed at, if known
            page_count: Document size; large documents shrink the PREVIEW base
            
        Returns:
            Target pixel width, at least 1 and at most max_side
        """
        if target_css_width and target_css_width > 0:
            base = float(target_css_width)
        else:
            base = self.fallback_base(viewport_width)
        
        if tier == Tier.PREVIEW:
            base *= self.preview_shrink(page_count)
        
        width = math.floor(base * self.multiplier(tier, device_pixel_ratio))
        return max(1, min(width, self.max_side))
