"""
Command-line capture of a long page.

    python -m deepscroll capture https://example.com -o page.png
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from playwright.async_api import async_playwright

from deepscroll.core.deepscroll import DeepScroll
from deepscroll.core.errors import DeepScrollError

logger = logging.getLogger("deepscroll")


async def capture_url(args: argparse.Namespace) -> int:
    ds = DeepScroll(store_dir=args.store_dir)

    async with async_playwright() as pw:
        browser = await pw.chromium.launch(
            headless=True,
            args=["--no-sandbox", "--disable-dev-shm-usage"],
        )
        try:
            page = await browser.new_page(viewport={"width": args.width, "height": args.height})
            await page.goto(args.url, wait_until="networkidle")
            tab_id = ds.attach(page)
            result = await ds.capture(tab_id)
        finally:
            await browser.close()

    if result is None or result.is_empty:
        logger.error("No content captured from %s", args.url)
        return 1

    session = ds.open_editor()
    session.beautified = args.beautify
    session.has_footer = args.footer
    session.export(args.output)
    print(f"Saved {len(result.slices)} slices → {args.output}")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="deepscroll", description="Capture a long page as one image")
    sub = parser.add_subparsers(dest="command", required=True)

    cap = sub.add_parser("capture", help="Scroll, capture and stitch a URL")
    cap.add_argument("url", help="Page to capture")
    cap.add_argument("-o", "--output", default="deepscroll.png", help="Output image path")
    cap.add_argument("--width", type=int, default=1280, help="Viewport width")
    cap.add_argument("--height", type=int, default=1000, help="Viewport height")
    cap.add_argument("--store-dir", default=None, help="Persist slices here instead of in memory")
    cap.add_argument("--beautify", action="store_true", help="Add the padded gradient frame")
    cap.add_argument("--footer", action="store_true", help="Add the source/date footer")
    cap.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        return asyncio.run(capture_url(args))
    except DeepScrollError as exc:
        logger.error("%s", exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
