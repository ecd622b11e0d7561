"""Unit tests for RenderScheduler."""
import asyncio
import pytest
from models.render import Bitmap, PageState
from models.tier import Tier
from models.viewer import Viewport
from services.display import AdapterInitError
from services.document_loader import DocumentLoadError
from services.layout_engine import LayoutEngine
from services.page_cache import PageBitmapCache
from services.render_runner import RenderTaskRunner
from services.scheduler import RenderScheduler


WIDE = Viewport(1440, 900)
NARROW = Viewport(600, 900)


def build_scheduler(document, display, viewport=WIDE, quality=Tier.AUTO, workers=1, cache=None):
    return RenderScheduler(
        document=document,
        runner=RenderTaskRunner(viewport),
        cache=cache or PageBitmapCache(),
        display=display,
        layout_engine=LayoutEngine(),
        viewport=viewport,
        quality=quality,
        yield_seconds=0,
        workers=workers
    )


def run_all(scheduler):
    async def scenario():
        layout = await scheduler.boot()
        await scheduler.run_background()
        return layout
    return asyncio.run(scenario())


class TestBootPhase:
    """Boot, initial fill and handoff."""
    
    def test_wide_viewport_boots_four_pages(self, make_document, recording_display):
        """10 pages on a wide viewport: pages 1-4 render, 5-10 reuse page 4."""
        document = make_document(10)
        scheduler = build_scheduler(document, recording_display)
        
        asyncio.run(scheduler.boot())
        
        assert [page for page, _ in document.calls] == [1, 2, 3, 4]
        images = recording_display.init_images
        assert len(images) == 10
        assert [image.page_index for image in images[:4]] == [1, 2, 3, 4]
        assert all(image is images[3] for image in images[4:])
        assert all(image.tier == Tier.PREVIEW for image in images)
        assert scheduler.page_states[4] == PageState.PREVIEW_RENDERED
        assert scheduler.page_states[5] == PageState.PLACEHOLDER
    
    def test_narrow_viewport_boots_two_pages(self, make_document, recording_display):
        document = make_document(10)
        scheduler = build_scheduler(document, recording_display, viewport=NARROW)
        
        asyncio.run(scheduler.boot())
        
        assert [page for page, _ in document.calls] == [1, 2]
        assert all(image is recording_display.init_images[1] for image in recording_display.init_images[2:])
    
    def test_short_document(self, make_document, recording_display):
        document = make_document(2)
        scheduler = build_scheduler(document, recording_display)
        
        asyncio.run(scheduler.boot())
        
        assert len(recording_display.init_images) == 2
        assert scheduler.boot_pages == 2
    
    def test_first_page_failure_uses_next_rendered_page(self, make_document, recording_display):
        document = make_document(6, fail_pages={1})
        scheduler = build_scheduler(document, recording_display)
        
        layout = asyncio.run(scheduler.boot())
        
        images = recording_display.init_images
        assert images[0] is images[1]
        assert images[1].page_index == 2
        assert layout.stage.width > 0
        assert scheduler.page_states[1] == PageState.PLACEHOLDER
    
    def test_failed_boot_page_keeps_previous_bitmap(self, make_document, recording_display):
        document = make_document(6, fail_pages={3})
        scheduler = build_scheduler(document, recording_display)
        
        asyncio.run(scheduler.boot())
        
        images = recording_display.init_images
        assert images[2] is images[1]
        assert images[3].page_index == 4
    
    def test_no_boot_page_renders(self, make_document, recording_display):
        document = make_document(6, fail_pages={1, 2, 3, 4})
        scheduler = build_scheduler(document, recording_display)
        
        with pytest.raises(DocumentLoadError, match="no page could be rendered"):
            asyncio.run(scheduler.boot())
    
    def test_display_failure_is_adapter_error(self, make_document, failing_display):
        document = make_document(4)
        scheduler = build_scheduler(document, failing_display)
        
        with pytest.raises(AdapterInitError, match="widget missing"):
            asyncio.run(scheduler.boot())


class TestBackgroundPhases:
    """Background preview fill and upgrade pass."""
    
    def test_every_page_upgraded(self, make_document, recording_display):
        document = make_document(10)
        scheduler = build_scheduler(document, recording_display, quality=Tier.HIGH)
        
        run_all(scheduler)
        
        for page in range(1, 11):
            assert scheduler.cache.highest_tier(page) == Tier.HIGH
            assert recording_display.page_image(page).tier == Tier.HIGH
            assert recording_display.page_image(page).page_index == page
        assert set(scheduler.page_states.values()) == {PageState.UPGRADED}
    
    def test_replacements_are_ascending_per_phase(self, make_document, recording_display):
        document = make_document(12)
        scheduler = build_scheduler(document, recording_display)
        
        run_all(scheduler)
        
        replaced = recording_display.replacements()
        preview = [page for page, image in replaced if image.tier == Tier.PREVIEW]
        upgrade = [page for page, image in replaced if image.tier == Tier.AUTO]
        assert preview == list(range(5, 13))
        assert upgrade == list(range(1, 13))
        # all preview replacements happen before the first upgrade
        tiers = [image.tier for _, image in replaced]
        assert tiers == sorted(tiers)
    
    def test_preview_uses_page_width(self, make_document, recording_display):
        """Fill pages use the laid-out page width as their css base."""
        document = make_document(6)
        scheduler = build_scheduler(document, recording_display)
        
        run_all(scheduler)
        
        page_width = scheduler.layout.page_width
        previews = recording_display.init_images[1:4] + [
            image for _, image in recording_display.replacements() if image.tier == Tier.PREVIEW
        ]
        assert [image.page_index for image in previews] == [2, 3, 4, 5, 6]
        for image in previews:
            assert image.pixel_width == int(page_width)
    
    def test_large_document_shrinks_preview(self, make_document, recording_display):
        """60 pages: both boot fill and background fill preview at 75% width."""
        document = make_document(60)
        scheduler = build_scheduler(document, recording_display)
        
        run_all(scheduler)
        
        page_width = scheduler.layout.page_width
        preview_calls = document.calls[:60]
        first_page, first_scale = preview_calls[0]
        assert first_page == 1
        assert first_scale == pytest.approx(int(1200 * 0.75) / 600)
        for page, scale in preview_calls[1:]:
            assert scale == pytest.approx(int(page_width * 0.75) / 600)
            assert int(600 * scale) < int(page_width)
    
    def test_failed_page_does_not_stop_others(self, make_document, recording_display):
        """A page that never renders keeps its placeholder; later pages still render."""
        document = make_document(10, fail_pages={6})
        scheduler = build_scheduler(document, recording_display)
        
        run_all(scheduler)
        
        assert scheduler.page_states[6] == PageState.PLACEHOLDER
        assert recording_display.page_image(6).page_index == 4
        for page in range(7, 11):
            assert scheduler.cache.has_tier(page, Tier.PREVIEW)
        assert [(f.page_index, f.tier) for f in scheduler.failures] == [(6, Tier.PREVIEW), (6, Tier.AUTO)]
    
    def test_next_phase_retries_failed_page(self, make_document, recording_display):
        document = make_document(8, flaky_pages={6})
        scheduler = build_scheduler(document, recording_display)
        
        run_all(scheduler)
        
        assert [page for page, _ in document.calls].count(6) == 2
        assert scheduler.cache.highest_tier(6) == Tier.AUTO
        assert recording_display.page_image(6).page_index == 6
    
    def test_already_upgraded_page_is_skipped(self, make_document, recording_display):
        """A page already at or above the upgrade tier is not re-rendered or replaced."""
        document = make_document(6)
        scheduler = build_scheduler(document, recording_display, quality=Tier.AUTO)
        retina = Bitmap(page_index=3, tier=Tier.RETINA, pixel_width=1800, pixel_height=2400, payload=b"retina")
        
        async def scenario():
            await scheduler.boot()
            assert scheduler.cache.upgrade(3, retina)
            await scheduler.run_background()
        asyncio.run(scenario())
        
        assert 3 not in [page for page, _ in recording_display.replacements()]
        assert scheduler.cache.get(3).bitmap is retina
        assert [page for page, _ in document.calls].count(3) == 1
    
    def test_lower_tier_result_not_published(self, make_document, recording_display):
        document = make_document(4)
        scheduler = build_scheduler(document, recording_display, quality=Tier.HIGH)
        run_all(scheduler)
        events_before = len(recording_display.events)
        
        stale = Bitmap(page_index=2, tier=Tier.AUTO, pixel_width=10, pixel_height=10, payload=b"old")
        assert scheduler._record(stale) is False
        
        assert len(recording_display.events) == events_before
        assert recording_display.page_image(2).tier == Tier.HIGH
    
    def test_reentrant_document_keeps_order(self, make_document, recording_display):
        """Parallel rasterization still publishes in ascending page order."""
        document = make_document(15, reentrant=True, delay=0.002)
        scheduler = build_scheduler(document, recording_display, workers=4)
        
        run_all(scheduler)
        
        replaced = recording_display.replacements()
        preview = [page for page, image in replaced if image.tier == Tier.PREVIEW]
        upgrade = [page for page, image in replaced if image.tier == Tier.AUTO]
        assert preview == list(range(5, 16))
        assert upgrade == list(range(1, 16))
    
    def test_stale_session_discards_results(self, make_document, recording_display):
        current = {"value": True}
        document = make_document(8)
        scheduler = build_scheduler(document, recording_display)
        scheduler._is_current = lambda: current["value"]
        
        async def scenario():
            await scheduler.boot()
            current["value"] = False
            await scheduler.run_background()
        asyncio.run(scenario())
        
        assert recording_display.replacements() == []
        assert set(scheduler.page_states.values()) == {PageState.CANCELLED}
    
    def test_release_closes_document(self, make_document, recording_display):
        document = make_document(4)
        scheduler = build_scheduler(document, recording_display)
        run_all(scheduler)
        
        scheduler.release()
        
        assert document.closed.wait(timeout=2)
        assert scheduler.progress()["upgraded"] == 4
        assert scheduler.progress()["cancelled"] == 0


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
