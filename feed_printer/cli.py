"""
Command line entry point.

    feedprinter poll [--once]
    feedprinter message NAME TEXT
    feedprinter image URL
    feedprinter dither INPUT OUTPUT
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Any, Dict, List, Optional

from PIL import Image, UnidentifiedImageError

from feed_printer.core.config import ImageSettings, PollSettings, PrinterSettings, load_config
from feed_printer.core.errors import ConfigurationError, ImageProcessingError, TransportError
from feed_printer.core.logging import configure_logging
from feed_printer.feed.poll import FeedPoller
from feed_printer.feed.source import PostgrestSource
from feed_printer.printing.compose import compose_message
from feed_printer.printing.connection import PrinterConnection
from feed_printer.printing.dither import dither_image
from feed_printer.printing.images import print_image_url

logger = logging.getLogger("feed_printer")


def _cmd_poll(args: argparse.Namespace, cfg: Dict[str, Any]) -> int:
    poll = PollSettings.from_config(cfg)
    printer = PrinterSettings.from_config(cfg)
    with PrinterConnection.from_settings(printer) as connection:
        poller = FeedPoller.from_settings(poll, printer, PostgrestSource.from_settings(poll), connection)
        logger.info(
            f"Polling every {poll.poll_interval_seconds}s for the latest {poll.poll_limit} items "
            f"(printer: {connection.transport!r})"
        )
        poller.run(iterations=1 if args.once else None)
    return 0


def _cmd_message(args: argparse.Namespace, cfg: Dict[str, Any]) -> int:
    printer = PrinterSettings.from_config(cfg)
    logger.info(f"Printing message from {args.name}: {args.text}")
    job = compose_message(args.name, args.text, min_dots=printer.min_feed_dots, dots_per_line=printer.dots_per_line)
    with PrinterConnection.from_settings(printer) as connection:
        try:
            connection.print_job(job)
        except TransportError as e:
            logger.error(f"Error printing message: {e}")
            return 1
    return 0


def _cmd_image(args: argparse.Namespace, cfg: Dict[str, Any]) -> int:
    image = ImageSettings.from_config(cfg)
    printer = PrinterSettings.from_config(cfg)
    with PrinterConnection.from_settings(printer) as connection:
        try:
            print_image_url(
                connection,
                args.url,
                image.temp_dir,
                max_width=printer.image_max_width,
                timeout=image.http_timeout_seconds,
            )
        except (ImageProcessingError, TransportError) as e:
            logger.error(f"Error during image printing: {e}")
            return 1
    return 0


def _cmd_dither(args: argparse.Namespace, cfg: Dict[str, Any]) -> int:
    max_width = args.max_width or PrinterSettings.from_config(cfg).image_max_width
    try:
        with Image.open(args.input) as img:
            img.load()
            binary = dither_image(img, max_width=max_width)
    except (UnidentifiedImageError, OSError) as e:
        logger.error(f"Could not read {args.input}: {e}")
        return 1
    try:
        binary.to_image().save(args.output, format="PNG")
    except OSError as e:
        logger.error(f"Could not write {args.output}: {e}")
        return 1
    logger.info(f"Dithered {args.input} -> {args.output} ({binary.width}x{binary.height})")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="feedprinter", description="Print a content feed on a thermal printer")
    parser.add_argument("--config", help="Path to config.json (default: $FEEDPRINTER_CONFIG_PATH or XDG)")
    sub = parser.add_subparsers(dest="command", required=True)

    p_poll = sub.add_parser("poll", help="Poll the feed and print new items")
    p_poll.add_argument("--once", action="store_true", help="Run a single iteration and exit")
    p_poll.set_defaults(func=_cmd_poll)

    p_msg = sub.add_parser("message", help="Print a short message receipt")
    p_msg.add_argument("name")
    p_msg.add_argument("text")
    p_msg.set_defaults(func=_cmd_message)

    p_img = sub.add_parser("image", help="Download, dither and print an image")
    p_img.add_argument("url")
    p_img.set_defaults(func=_cmd_image)

    p_dither = sub.add_parser("dither", help="Dither a local image to a black/white PNG")
    p_dither.add_argument("input")
    p_dither.add_argument("output")
    p_dither.add_argument("--max-width", type=int, default=None)
    p_dither.set_defaults(func=_cmd_dither)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging()
    try:
        cfg = load_config(args.config)
        return args.func(args, cfg)
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return 130


if __name__ == "__main__":
    sys.exit(main())
