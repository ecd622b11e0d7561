"""Viewing session: one document, its render pipeline and viewer state."""
import asyncio
import contextlib
import logging
from typing import Optional

from config import RENDER_WORKERS, RENDER_YIELD_SECONDS, ZOOM_MAX, ZOOM_MIN, ZOOM_STEP
from models.options import ViewerOptions
from models.viewer import Layout, ViewerState, Viewport
from services.display import DisplayAdapter
from services.document_loader import DocumentHandle, DocumentLoader, DocumentLoadError, DocumentSource
from services.layout_engine import LayoutEngine
from services.page_cache import PageBitmapCache
from services.render_runner import RenderTaskRunner
from services.scheduler import RenderScheduler, SessionSuperseded
from services.tier_policy import TierPolicy
from services.viewer_options import ViewerConfigParser

logger = logging.getLogger(__name__)


class ViewerSession:
    """
    Owns the viewer state, bitmap cache and scheduler of the loaded document.
    
    Loading a new document bumps the session generation and cancels the
    previous scheduler before the new boot starts; results that arrive for
    an older generation are discarded. Navigation and zoom never touch the
    render pipeline.
    """
    
    def __init__(
        self,
        display: DisplayAdapter,
        viewport: Viewport,
        options: Optional[ViewerOptions] = None,
        loader: Optional[DocumentLoader] = None,
        tier_policy: Optional[TierPolicy] = None,
        yield_seconds: float = RENDER_YIELD_SECONDS,
        workers: int = RENDER_WORKERS
    ):
        self.display = display
        self.viewport = viewport
        self.options = options or ViewerConfigParser().parse()
        self.loader = loader or DocumentLoader()
        self.tier_policy = tier_policy or TierPolicy()
        self.yield_seconds = yield_seconds
        self.workers = workers
        
        self.generation = 0
        self.state: Optional[ViewerState] = None
        self.cache: Optional[PageBitmapCache] = None
        self.scheduler: Optional[RenderScheduler] = None
        self._task: Optional[asyncio.Task] = None
        self._requested: Optional[DocumentHandle] = None
        self._booting: Optional[RenderScheduler] = None
        
        display.on_page_changed(self._on_page_changed)
    
    async def load(self, source: Optional[DocumentSource] = None) -> ViewerState:
        """
        Replace the current document and boot the new one.
        
        Args:
            source: Document to show; defaults to the configured source
            
        Returns:
            ViewerState of the new document
            
        Raises:
            DocumentLoadError: If the document cannot be opened or rendered at all
            AdapterInitError: If the display cannot be initialized
            SessionSuperseded: If another load started before this one finished
        """
        if source is None:
            source = self.options.source
        if source is None:
            raise DocumentLoadError("<none>", "no document source configured")
        
        self.generation += 1
        generation = self.generation
        self._requested = source if isinstance(source, DocumentHandle) else None
        await self._end_current()
        
        document = await self.loader.load(source)
        if generation != self.generation:
            if document is not self._requested:
                document.close()
            raise SessionSuperseded()
        
        cache = PageBitmapCache()
        scheduler = RenderScheduler(
            document=document,
            runner=RenderTaskRunner(self.viewport, self.tier_policy, max_side=self.tier_policy.max_side),
            cache=cache,
            display=self.display,
            layout_engine=LayoutEngine(spread_override=self.options.spread),
            viewport=self.viewport,
            quality=self.options.quality,
            is_current=lambda: self.generation == generation,
            yield_seconds=self.yield_seconds,
            workers=self.workers
        )
        
        self._booting = scheduler
        try:
            layout = await scheduler.boot()
        except BaseException:
            if generation != self.generation:
                await self._retire(scheduler)
            else:
                scheduler.release()
            raise
        finally:
            if self._booting is scheduler:
                self._booting = None
        
        self.cache = cache
        self.scheduler = scheduler
        self.state = ViewerState(current_page=1, zoom_factor=ZOOM_MIN, spread_mode=layout.spread_mode)
        self._task = asyncio.create_task(scheduler.run_background())
        logger.info(f"Session {generation}: {document.page_count} pages ready for navigation")
        return self.state
    
    async def close(self) -> None:
        """End the session and release the document."""
        self.generation += 1
        self._requested = None
        await self._end_current()
    
    async def wait_idle(self) -> None:
        """Wait until the background phases of the current document finish."""
        if self._task is not None:
            await self._task
    
    @property
    def rendering(self) -> bool:
        return self._task is not None and not self._task.done()
    
    def navigate_to(self, page: int) -> None:
        self._require_state()
        self.display.navigate_to(page)
    
    def next_page(self) -> None:
        self._require_state()
        self.display.flip_next()
    
    def prev_page(self) -> None:
        self._require_state()
        self.display.flip_prev()
    
    def set_zoom(self, zoom: float) -> float:
        """Clamp to the zoom range, round to two decimals, and store."""
        state = self._require_state()
        state.zoom_factor = round(min(max(zoom, ZOOM_MIN), ZOOM_MAX), 2)
        return state.zoom_factor
    
    def zoom_in(self) -> float:
        return self.set_zoom(self._require_state().zoom_factor + ZOOM_STEP)
    
    def zoom_out(self) -> float:
        return self.set_zoom(self._require_state().zoom_factor - ZOOM_STEP)
    
    def resize(self, viewport: Viewport) -> Optional[Layout]:
        """Re-lay out the stage for a new viewport; the spread mode is kept."""
        self.viewport = viewport
        if self.scheduler is None or self.state is None:
            return None
        layout = self.scheduler.layout_engine.relayout(viewport, self.state.spread_mode)
        self.scheduler.update_layout(layout, viewport)
        self.display.resize(layout.stage)
        return layout
    
    def _on_page_changed(self, page: int) -> None:
        if self.state is not None:
            self.state.current_page = page
    
    def _require_state(self) -> ViewerState:
        if self.state is None:
            raise RuntimeError("No document loaded")
        return self.state
    
    async def _end_current(self) -> None:
        task, scheduler, booting = self._task, self.scheduler, self._booting
        self._booting = None
        self._task = None
        self.scheduler = None
        self.cache = None
        self.state = None
        
        if task is not None and not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        for outgoing in (booting, scheduler):
            if outgoing is not None:
                await self._retire(outgoing)
    
    async def _retire(self, scheduler: RenderScheduler) -> None:
        """Stop an outgoing scheduler; a handle the newest load reuses stays open."""
        if scheduler.document is self._requested:
            await scheduler.detach()
        else:
            scheduler.release()
