"""Render task runner: one page, one tier, one bitmap."""
import logging
from typing import Optional, Union

from config import MAX_SIDE
from models.render import Bitmap, RenderFailure, RenderRequest
from models.viewer import Viewport
from services.document_loader import DocumentHandle
from services.tier_policy import TierPolicy

logger = logging.getLogger(__name__)

RenderResult = Union[Bitmap, RenderFailure]


class RenderTaskRunner:
    """
    Performs a single rasterization and never raises decoding failures.
    
    The requested width comes from the tier policy; both raster sides are
    capped at `max_side`, so oversized requests render at the clamped size.
    """
    
    def __init__(self, viewport: Viewport, tier_policy: Optional[TierPolicy] = None, max_side: int = MAX_SIDE):
        self.viewport = viewport
        self.tier_policy = tier_policy or TierPolicy(max_side=max_side)
        self.max_side = max_side
    
    def target_width(self, document: DocumentHandle, request: RenderRequest) -> int:
        return self.tier_policy.resolve(
            request.tier,
            self.viewport.device_pixel_ratio,
            self.viewport.width,
            target_css_width=request.target_css_width,
            page_count=document.page_count
        )
    
    def scale_for(self, native_width: float, native_height: float, target_width: int) -> float:
        """Scale reaching `target_width`, reduced so neither side exceeds max_side."""
        scale = target_width / native_width
        return min(scale, self.max_side / native_width, self.max_side / native_height)
    
    def render(self, document: DocumentHandle, request: RenderRequest) -> RenderResult:
        """
        Rasterize one page.
        
        Args:
            document: Open document handle
            request: Page and tier to render
            
        Returns:
            Bitmap on success, RenderFailure tagged with page and cause otherwise
            
        Raises:
            ValueError: If the page index is outside 1..page_count
        """
        page_count = document.page_count
        if not 1 <= request.page_index <= page_count:
            raise ValueError(f"Page index {request.page_index} out of range 1..{page_count}")
        
        try:
            native = document.native_size(request.page_index)
            if native.width <= 0 or native.height <= 0:
                raise ValueError(f"invalid page size {native.width}x{native.height}")
            
            target = self.target_width(document, request)
            scale = self.scale_for(native.width, native.height, target)
            raster = document.rasterize(request.page_index, scale)
        except Exception as e:
            logger.warning(
                f"Render failed for page {request.page_index} at {request.tier.label}: {e}",
                exc_info=logger.isEnabledFor(logging.DEBUG)
            )
            return RenderFailure(page_index=request.page_index, tier=request.tier, cause=str(e) or type(e).__name__)
        
        if raster.width > self.max_side or raster.height > self.max_side:
            logger.warning(
                f"Raster for page {request.page_index} is {raster.width}x{raster.height}, "
                f"above the {self.max_side}px cap"
            )
            return RenderFailure(
                page_index=request.page_index,
                tier=request.tier,
                cause=f"raster {raster.width}x{raster.height} exceeds {self.max_side}px"
            )
        
        logger.debug(
            f"Rendered page {request.page_index} at {request.tier.label}: "
            f"{raster.width}x{raster.height} (scale {scale:.3f})"
        )
        return Bitmap(
            page_index=request.page_index,
            tier=request.tier,
            pixel_width=raster.width,
            pixel_height=raster.height,
            payload=raster.payload
        )
