"""
Headless flip-book rendering script.

This script:
1. Opens a PDF from a path or http(s) URL
2. Boots the viewer session (first pages at preview quality)
3. Fills the remaining pages in the background at preview quality
4. Upgrades every page to the requested quality tier
5. Mirrors each page image into the output directory

Usage:
    python render_flipbook.py document.pdf --out pages/ --quality high
"""
import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent))

from config import LOG_FORMAT, LOG_LEVEL
from logger import setup_logging
from models.viewer import Viewport
from services.display import AdapterInitError, DirectoryDisplay
from services.document_loader import DocumentLoadError
from services.scheduler import RenderScheduler
from services.session import ViewerSession
from services.viewer_options import ViewerConfigParser

logger = logging.getLogger(__name__)


def parse_viewport(value: str) -> Viewport:
    """Parse a `WIDTHxHEIGHT` viewport argument."""
    try:
        width, height = (float(part) for part in value.lower().split("x"))
    except ValueError:
        raise argparse.ArgumentTypeError(f"viewport must look like 1440x900, got '{value}'")
    return Viewport(width=width, height=height)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Render a PDF progressively into flip-book page images")
    parser.add_argument("source", help="PDF path or http(s) URL")
    parser.add_argument("--out", default="flipbook_pages", help="Output directory")
    parser.add_argument("--quality", default="auto", help="auto, high or retina")
    parser.add_argument("--mode", default="auto", help="auto, single or double")
    parser.add_argument("--viewport", type=parse_viewport, default=parse_viewport("1440x900"))
    parser.add_argument("--dpr", type=float, default=1.0, help="Device pixel ratio")
    parser.add_argument("--watermark", default=None)
    return parser


async def render(args: argparse.Namespace) -> RenderScheduler:
    options = ViewerConfigParser().parse(
        source=args.source,
        mode=args.mode,
        quality=args.quality,
        watermark=args.watermark
    )
    viewport = Viewport(args.viewport.width, args.viewport.height, device_pixel_ratio=args.dpr)
    display = DirectoryDisplay(Path(args.out), watermark=options.watermark)
    session = ViewerSession(display, viewport, options)
    
    state = await session.load()
    logger.info(f"✓ Booted: {display.page_count} pages, {state.spread_mode.value} page mode")
    if display.overlay_text:
        logger.info(f"Watermark overlay: {display.overlay_text}")
    await session.wait_idle()
    scheduler = session.scheduler
    await session.close()
    return scheduler


def main(argv: Optional[List[str]] = None) -> int:
    """Main rendering process."""
    if LOG_FORMAT == "json":
        setup_logging(LOG_LEVEL)
    args = build_parser().parse_args(argv)
    
    try:
        scheduler = asyncio.run(render(args))
    except DocumentLoadError as e:
        logger.error(f"Cannot open document: {e}")
        return 1
    except AdapterInitError as e:
        logger.error(f"Viewer unavailable: {e}")
        return 1
    except KeyboardInterrupt:
        logger.warning("Rendering interrupted by user")
        return 1
    
    logger.info("=" * 60)
    logger.info("RENDERING COMPLETE")
    logger.info("=" * 60)
    logger.info(f"Pages: {scheduler.page_count}")
    logger.info(f"Failures: {len(scheduler.failures)}")
    for failure in scheduler.failures:
        logger.info(f"  - page {failure.page_index} at {failure.tier.label}: {failure.cause}")
    logger.info(f"Output: {args.out}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
