"""Command-line interface for the rss_dashboard application."""

from __future__ import annotations

import argparse
import dataclasses
import logging
import pprint
from pathlib import Path
from typing import List, Optional

from .config import AppConfig, parse_app_config
from .errors import FeedError
from .runner import RunConfig, execute

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Create the CLI argument parser."""
    parser = argparse.ArgumentParser(
        description="Refresh subscribed RSS, Atom, YouTube and podcast feeds."
    )
    parser.add_argument(
        "--config",
        default="configs/config.xml",
        help="Path to the main configuration XML file.",
    )

    parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level (e.g. DEBUG, INFO, WARNING). Overrides config.",
    )
    parser.add_argument(
        "--log-file",
        default=None,
        help="Optional path to a log file. Overrides config.",
    )

    parser.add_argument("--add-feed", metavar="URL", help="Subscribe to a feed URL.")
    parser.add_argument("--title", help="Title for the feed added with --add-feed.")
    parser.add_argument(
        "--folder", default="", help="Folder for the feed added with --add-feed."
    )
    parser.add_argument(
        "--add-youtube",
        metavar="CHANNEL",
        help="Subscribe to a YouTube channel id, handle, URL or username.",
    )
    parser.add_argument(
        "--import-opml",
        metavar="PATH",
        help="Merge subscriptions from an OPML file. Overrides config.",
    )
    parser.add_argument(
        "--no-refresh",
        action="store_true",
        help="Do not refresh existing feeds.",
    )

    parser.add_argument(
        "--save-feeds",
        metavar="PATH",
        help="Write the resulting feed collection to PATH as JSON.",
    )
    parser.add_argument(
        "--load-feeds",
        metavar="PATH",
        help="Replace the stored collection with feeds loaded from a JSON snapshot.",
    )

    return parser


def configure_logging(level_name: str, log_file: Optional[str] = None) -> None:
    """Initialise logging according to options."""
    log_level = getattr(logging, level_name.upper(), None)
    if not isinstance(log_level, int):
        raise ValueError(f"Unsupported log level: {level_name}")

    formatter = logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()

    root_logger.setLevel(log_level)

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)
    root_logger.addHandler(stream_handler)

    if log_file:
        log_path = Path(log_file)
        if log_path.parent and not log_path.parent.exists():
            log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)
        logger.debug(
            "Logger initialised with level %s and file output to %s",
            level_name.upper(),
            log_path,
        )
    else:
        logger.debug(
            "Logger initialised with console output at level %s", level_name.upper()
        )


def build_run_config(app_config: AppConfig, args: argparse.Namespace) -> RunConfig:
    return RunConfig(
        connection_string=app_config.database.connection_string,
        media_settings=app_config.media,
        available_tags=list(app_config.tags),
        timeout=app_config.timeout,
        summary_length=app_config.summary_length,
        opml_file=args.import_opml or app_config.opml_file,
        add_feed_url=args.add_feed,
        add_feed_title=args.title,
        add_feed_folder=args.folder,
        add_youtube=args.add_youtube,
        load_feeds_path=args.load_feeds,
        refresh=not args.no_refresh,
        save_feeds_path=args.save_feeds,
    )


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        app_config = parse_app_config(args.config)

        log_level = args.log_level or app_config.logging.level
        log_file = args.log_file or app_config.logging.file
        configure_logging(log_level, log_file)

        config = build_run_config(app_config, args)
        logger.info("Active Configuration:\n%s", pprint.pformat(dataclasses.asdict(config)))

        result = execute(config)
    except ValueError as exc:
        parser.error(str(exc))
    except (FeedError, RuntimeError, FileNotFoundError) as exc:
        logger.error("%s", exc)
        return 1
    except Exception:  # noqa: BLE001
        logger.exception("Unexpected error during execution.")
        return 1

    counts = result.counts
    print(
        f"{counts['feeds']} feeds, {counts['items']} items, "
        f"{counts['unread']} unread, {counts['starred']} starred"
    )
    return 0
