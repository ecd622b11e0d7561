"""
Progressive tiered-rendering scheduler.

Drives one document through its render phases on a single logical task
stream:

1. Boot: page 1 at PREVIEW, then layout and spread mode.
2. Initial fill: pages 2..K at PREVIEW; the rest get placeholders that
   reference the last successfully rendered bitmap.
3. Handoff: the display is initialized with the boot image list.
4. Background fill: every remaining page at PREVIEW, ascending.
5. Upgrade: every page at the configured tier, ascending.

Rasterization runs on worker threads so the event loop stays free; the
scheduler yields after every page. Cache and display mutations happen only
on the scheduler's task, in ascending page order.
"""

import asyncio
import logging
import threading
from collections import deque
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Deque, Dict, Iterable, List, Optional, Tuple

from config import BOOT_PAGES_NARROW, BOOT_PAGES_WIDE, RENDER_WORKERS, RENDER_YIELD_SECONDS
from models.render import Bitmap, PageSize, PageState, RenderFailure, RenderRequest
from models.tier import Tier
from models.viewer import Layout, Viewport
from services.display import AdapterInitError, DisplayAdapter
from services.document_loader import DocumentHandle, DocumentLoadError
from services.layout_engine import LayoutEngine
from services.page_cache import PageBitmapCache
from services.render_runner import RenderResult, RenderTaskRunner

logger = logging.getLogger(__name__)


class SessionSuperseded(Exception):
    """Raised when a newer document replaced the one being rendered."""


class RenderScheduler:
    """
    Schedules every page of one document through boot, fill and upgrade.
    
    Documents are rendered one page at a time unless the handle declares
    itself reentrant, in which case up to `workers` pages are rasterized
    ahead while results are still applied strictly in page order.
    """
    
    def __init__(
        self,
        document: DocumentHandle,
        runner: RenderTaskRunner,
        cache: PageBitmapCache,
        display: DisplayAdapter,
        layout_engine: LayoutEngine,
        viewport: Viewport,
        quality: Tier = Tier.AUTO,
        is_current: Callable[[], bool] = lambda: True,
        yield_seconds: float = RENDER_YIELD_SECONDS,
        workers: int = RENDER_WORKERS
    ):
        self.document = document
        self.runner = runner
        self.cache = cache
        self.display = display
        self.layout_engine = layout_engine
        self.viewport = viewport
        self.quality = quality
        self.yield_seconds = yield_seconds
        self._is_current = is_current
        
        self.page_count = document.page_count
        self.page_states: Dict[int, PageState] = {
            page: PageState.NOT_RENDERED for page in range(1, self.page_count + 1)
        }
        self.failures: List[RenderFailure] = []
        self.layout: Optional[Layout] = None
        self.boot_pages = 0
        
        self._window = max(1, workers) if document.reentrant else 1
        self._executor = ThreadPoolExecutor(max_workers=self._window, thread_name_prefix="render")
        self._released = False
    
    def boot_page_count(self) -> int:
        wanted = BOOT_PAGES_WIDE if self.viewport.is_wide else BOOT_PAGES_NARROW
        return min(self.page_count, wanted)
    
    async def boot(self) -> Layout:
        """
        Render the boot pages, lay out the stage and initialize the display.
        
        Returns:
            Layout decided from page 1
            
        Raises:
            DocumentLoadError: If page 1 has no usable size or no boot page renders
            AdapterInitError: If the display fails to initialize
            SessionSuperseded: If a newer document was loaded meanwhile
        """
        self.boot_pages = self.boot_page_count()
        images: List[Optional[Bitmap]] = [None] * self.page_count
        logger.info(f"Boot: rendering pages 1-{self.boot_pages} of {self.page_count} at preview")
        
        for page in range(1, self.boot_pages + 1):
            if page > 1:
                await self._pause()
            result = await self._render(self._request(page, Tier.PREVIEW))
            self._ensure_current()
            if self._record(result, publish=False):
                images[page - 1] = result
            if page == 1:
                self.layout = self.layout_engine.layout(self._first_page_size(), self.viewport)
        
        self._fill_placeholders(images)
        self._handoff(images)
        return self.layout
    
    async def run_background(self) -> None:
        """Background preview fill followed by the upgrade pass."""
        try:
            fill_pages = range(self.boot_pages + 1, self.page_count + 1)
            if fill_pages:
                logger.info(f"Background fill: pages {fill_pages.start}-{fill_pages.stop - 1} at preview")
            await self._sweep(fill_pages, Tier.PREVIEW)
            
            upgrade_pages = [
                page for page in range(1, self.page_count + 1)
                if not self.cache.has_tier(page, self.quality)
            ]
            logger.info(f"Upgrade: {len(upgrade_pages)} pages at {self.quality.label}")
            await self._sweep(upgrade_pages, self.quality)
            
            logger.info(
                f"Rendering complete: {self.page_count} pages, {len(self.failures)} failures",
                extra={"cache": self.cache.stats()}
            )
        except SessionSuperseded:
            logger.info("Document replaced, discarding stale render results")
            self._mark_cancelled()
        except asyncio.CancelledError:
            self._mark_cancelled()
            raise
    
    def update_layout(self, layout: Layout, viewport: Viewport) -> None:
        """Use a new stage (after a resize) for requests not yet issued."""
        self.layout = layout
        self.viewport = viewport
        self.runner.viewport = viewport
    
    def release(self) -> None:
        """Close the document once renders already in flight have finished."""
        if not self._stop():
            return
        threading.Thread(target=self._drain, args=(True,), name="render-release", daemon=True).start()
    
    async def detach(self) -> None:
        """
        Stop rendering and wait for renders in flight, leaving the document open.
        
        Used when the same document handle is handed to a new scheduler.
        """
        if not self._stop():
            return
        await asyncio.get_running_loop().run_in_executor(None, self._drain, False)
    
    def _stop(self) -> bool:
        if self._released:
            return False
        self._released = True
        self._mark_cancelled()
        return True
    
    def _drain(self, close_document: bool) -> None:
        self._executor.shutdown(wait=True)
        if not close_document:
            return
        try:
            self.document.close()
        except Exception as e:
            logger.error(f"Error closing document: {e}", exc_info=True)
    
    def progress(self) -> Dict[str, int]:
        """Number of pages in each state."""
        counts = {state.value: 0 for state in PageState}
        for state in self.page_states.values():
            counts[state.value] += 1
        return counts
    
    async def _sweep(self, pages: Iterable[int], tier: Tier) -> None:
        """Render `pages` at `tier` and publish each result in page order."""
        loop = asyncio.get_running_loop()
        pending = iter(pages)
        in_flight: Deque[Tuple[int, asyncio.Future]] = deque()
        
        def submit_next() -> None:
            page = next(pending, None)
            if page is not None:
                request = self._request(page, tier)
                in_flight.append((page, loop.run_in_executor(self._executor, self.runner.render, self.document, request)))
        
        for _ in range(self._window):
            submit_next()
        
        try:
            while in_flight:
                page, future = in_flight.popleft()
                result = await future
                self._ensure_current()
                submit_next()
                self._record(result)
                await self._pause()
        finally:
            for _, future in in_flight:
                future.cancel()
    
    async def _render(self, request: RenderRequest) -> RenderResult:
        self._ensure_current()
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, self.runner.render, self.document, request)
    
    async def _pause(self) -> None:
        await asyncio.sleep(self.yield_seconds)
    
    def _request(self, page: int, tier: Tier) -> RenderRequest:
        target = self.layout.page_width if self.layout else None
        return RenderRequest(page_index=page, tier=tier, target_css_width=target)
    
    def _record(self, result: RenderResult, publish: bool = True) -> bool:
        """
        Apply a render result to the cache and, when publishing, the display.
        
        Returns:
            True if the bitmap was applied
        """
        if isinstance(result, RenderFailure):
            self.failures.append(result)
            return False
        
        page = result.page_index
        if not self.cache.upgrade(page, result):
            return False
        self.page_states[page] = PageState.PREVIEW_RENDERED if result.tier == Tier.PREVIEW else PageState.UPGRADED
        
        if publish:
            try:
                self.display.replace_page(page, result)
            except Exception as e:
                logger.error(f"Display rejected page {page}: {e}", exc_info=True)
        return True
    
    def _first_page_size(self) -> PageSize:
        name = getattr(self.document, "name", "document")
        try:
            native = self.document.native_size(1)
        except Exception as e:
            raise DocumentLoadError(name, f"cannot read page 1 size: {e}") from e
        if native.width <= 0 or native.height <= 0:
            raise DocumentLoadError(name, f"invalid page 1 size {native.width}x{native.height}")
        return native
    
    def _fill_placeholders(self, images: List[Optional[Bitmap]]) -> None:
        """Point every page without a bitmap at the nearest earlier rendered one."""
        rendered = [image for image in images if image is not None]
        if not rendered:
            raise DocumentLoadError(getattr(self.document, "name", "document"), "no page could be rendered")
        
        fill = rendered[0]
        for index, image in enumerate(images):
            if image is None:
                images[index] = fill
                self.page_states[index + 1] = PageState.PLACEHOLDER
            else:
                fill = image
    
    def _handoff(self, images: List[Bitmap]) -> None:
        try:
            self.display.init(self.layout.stage, self.layout.spread_mode, images)
        except AdapterInitError:
            raise
        except Exception as e:
            logger.error(f"Display initialization failed: {e}", exc_info=True)
            raise AdapterInitError(str(e)) from e
    
    def _ensure_current(self) -> None:
        if not self._is_current():
            raise SessionSuperseded()
    
    def _mark_cancelled(self) -> None:
        for page, state in self.page_states.items():
            if state != PageState.UPGRADED:
                self.page_states[page] = PageState.CANCELLED
