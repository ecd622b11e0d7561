"""Unit tests for the flip-book display adapters."""
import pytest
from models.render import Bitmap
from models.tier import Tier
from models.viewer import SpreadMode, StageSize
from services.display import AdapterInitError, DirectoryDisplay, FlipbookDisplay


STAGE = StageSize(width=1200, height=800)


def make_bitmap(page, tier=Tier.PREVIEW):
    return Bitmap(page_index=page, tier=tier, pixel_width=600, pixel_height=800, payload=f"p{page}".encode())


def make_display(count, spread_mode=SpreadMode.SINGLE):
    display = FlipbookDisplay()
    display.init(STAGE, spread_mode, [make_bitmap(i) for i in range(1, count + 1)])
    return display


class TestFlipbookDisplay:
    """Test suite for FlipbookDisplay."""
    
    def test_init(self):
        display = make_display(5)
        
        assert display.page_count == 5
        assert display.current_page == 1
        assert display.stage == STAGE
        assert display.thumbnail(3).width == 160
        assert display.thumbnail(3).height == 213
    
    def test_init_rejects_missing_images(self):
        display = FlipbookDisplay()
        
        with pytest.raises(AdapterInitError):
            display.init(STAGE, SpreadMode.SINGLE, [make_bitmap(1), None])
    
    def test_replace_updates_image_and_thumbnail(self):
        """Main image and thumbnail are swapped together."""
        display = make_display(3)
        fresh = make_bitmap(2, Tier.HIGH)
        
        display.replace_page(2, fresh)
        
        assert display.page_image(2) is fresh
        assert display.thumbnail(2).source is fresh
    
    def test_replace_current_page(self):
        display = make_display(3)
        display.navigate_to(2)
        fresh = make_bitmap(2, Tier.HIGH)
        
        display.replace_page(2, fresh)
        
        assert display.current_image() is fresh
    
    def test_replace_before_init_raises(self):
        with pytest.raises(RuntimeError):
            FlipbookDisplay().replace_page(1, make_bitmap(1))
    
    def test_single_mode_flipping(self):
        display = make_display(3)
        changes = []
        display.on_page_changed(changes.append)
        
        display.flip_next()
        display.flip_next()
        display.flip_next()
        display.flip_prev()
        
        assert changes == [2, 3, 2]
        assert display.current_page == 2
    
    def test_double_mode_spreads(self):
        """The cover is shown alone, then (even, odd) pairs."""
        display = make_display(6, SpreadMode.DOUBLE)
        
        assert display.visible_pages() == [1]
        display.flip_next()
        assert display.visible_pages() == [2, 3]
        display.flip_next()
        assert display.visible_pages() == [4, 5]
        display.flip_next()
        assert display.visible_pages() == [6]
        display.flip_next()
        assert display.current_page == 6
        display.flip_prev()
        assert display.visible_pages() == [4, 5]
        display.flip_prev()
        display.flip_prev()
        assert display.current_page == 1
    
    def test_navigate_clamps_and_notifies(self):
        display = make_display(4)
        changes = []
        display.on_page_changed(changes.append)
        
        display.navigate_to(10)
        display.navigate_to(4)
        display.navigate_to(-3)
        
        assert changes == [4, 1]
    
    def test_overlay_text(self):
        assert FlipbookDisplay(watermark="  Confidential ").overlay_text == "Confidential"
        assert FlipbookDisplay(watermark="   ").overlay_text is None
        assert FlipbookDisplay().overlay_text is None


class TestDirectoryDisplay:
    """Test suite for DirectoryDisplay."""
    
    def test_writes_pages(self, tmp_path):
        display = DirectoryDisplay(tmp_path / "out")
        display.init(STAGE, SpreadMode.SINGLE, [make_bitmap(1), make_bitmap(2)])
        
        assert display.page_path(1).read_bytes() == b"p1"
        assert display.page_path(2).read_bytes() == b"p2"
        
        display.replace_page(2, Bitmap(2, Tier.HIGH, 1200, 1600, b"sharp"))
        assert display.page_path(2).read_bytes() == b"sharp"
        assert not list((tmp_path / "out").glob("*.tmp"))
    
    def test_unwritable_directory_fails_init(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("not a directory")
        display = DirectoryDisplay(blocker / "out")
        
        with pytest.raises(AdapterInitError):
            display.init(STAGE, SpreadMode.SINGLE, [make_bitmap(1)])


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
