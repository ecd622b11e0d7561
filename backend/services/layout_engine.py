"""Layout engine: book stage size and spread mode."""
import logging
import math
from typing import Optional

from config import (
    CHROME_HEIGHT,
    MIN_STAGE_HEIGHT,
    MIN_STAGE_WIDTH,
    NARROW_VIEWPORT_MAX,
    STAGE_HEIGHT_FRACTION,
    STAGE_MAX_WIDTH,
    STAGE_WIDTH_FRACTION,
)
from models.render import PageSize
from models.viewer import Layout, SpreadMode, StageSize, Viewport

logger = logging.getLogger(__name__)


class LayoutEngine:
    """
    Sizes the book container from the first page's aspect ratio.
    
    The native size of page 1 is cached on the first call to `layout`, so
    viewport changes can be re-laid out without rendering anything.
    """
    
    def __init__(self, spread_override: Optional[SpreadMode] = None, chrome_height: int = CHROME_HEIGHT):
        self.spread_override = spread_override
        self.chrome_height = chrome_height
        self.native_size: Optional[PageSize] = None
    
    def decide_spread_mode(self, native: PageSize, viewport: Viewport) -> SpreadMode:
        """Explicit override wins; landscape pages or narrow viewports get single pages."""
        if self.spread_override is not None:
            return self.spread_override
        if native.is_landscape or viewport.width < NARROW_VIEWPORT_MAX:
            return SpreadMode.SINGLE
        return SpreadMode.DOUBLE
    
    def compute_stage_size(
        self,
        native: PageSize,
        viewport: Viewport,
        spread_mode: SpreadMode = SpreadMode.SINGLE
    ) -> StageSize:
        """
        Largest stage preserving the page (or spread) aspect ratio within bounds.
        
        Width is bounded by min(0.96 * viewport width, 1400) and height by
        min(viewport height - chrome, 0.9 * viewport height). Viewports too
        small for a usable stage degrade to the minimum stage bounds.
        """
        book_width = native.width * (2 if spread_mode == SpreadMode.DOUBLE else 1)
        max_width = min(STAGE_WIDTH_FRACTION * viewport.width, STAGE_MAX_WIDTH)
        max_height = min(viewport.height - self.chrome_height, STAGE_HEIGHT_FRACTION * viewport.height)
        
        if max_width < MIN_STAGE_WIDTH or max_height < MIN_STAGE_HEIGHT:
            logger.warning(
                f"Viewport {viewport.width}x{viewport.height} too small for layout, "
                f"using minimum stage bounds"
            )
            max_width = max(max_width, MIN_STAGE_WIDTH)
            max_height = max(max_height, MIN_STAGE_HEIGHT)
        
        scale = min(max_width / book_width, max_height / native.height)
        return StageSize(
            width=max(1, math.floor(book_width * scale)),
            height=max(1, math.floor(native.height * scale))
        )
    
    def layout(self, native: PageSize, viewport: Viewport) -> Layout:
        """Decide spread mode and stage size for a freshly booted document."""
        self.native_size = native
        spread_mode = self.decide_spread_mode(native, viewport)
        stage = self.compute_stage_size(native, viewport, spread_mode)
        logger.info(f"Layout: {stage.width}x{stage.height} stage, {spread_mode.value} page mode")
        return Layout(stage=stage, spread_mode=spread_mode)
    
    def relayout(self, viewport: Viewport, spread_mode: SpreadMode) -> Layout:
        """Recompute the stage for a new viewport, keeping the spread mode."""
        if self.native_size is None:
            raise RuntimeError("relayout called before layout")
        stage = self.compute_stage_size(self.native_size, viewport, spread_mode)
        return Layout(stage=stage, spread_mode=spread_mode)
