"""
1.0 Command Line Entry Point
Generates sitemap.xml for a static site directory.

Key features:
- Optional config.json, overridden by command-line flags
- Writes the sitemap to a file or stdout
- Optional CSV snapshot + change log per run (see data_processor)
"""

import argparse
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from dirsitemap.config import CONFIG_FILE_PATH, build_scanner_options, load_config
from dirsitemap.data_processor import DataProcessor
from dirsitemap.errors import SitemapError
from dirsitemap.generator import EMBEDDED_SITEMAP, SitemapGenerator

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logging(verbose: bool = False, log_file: Optional[str] = None) -> None:
    """
    1.1 Configure root logging: stream handler always, file handler if requested.
    """
    if logging.getLogger().handlers:
        # already configured by the host application
        return
    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=LOG_FORMAT,
        handlers=handlers,
    )


def build_arg_parser() -> argparse.ArgumentParser:
    """
    2.0 Command-line arguments. Anything left unset falls back to the config file.
    """
    parser = argparse.ArgumentParser(
        prog="dirsitemap",
        description="Generate sitemap.xml from a directory of static site files.",
    )
    parser.add_argument("directory", nargs="?", help="Site root directory (overrides config 'directory')")
    parser.add_argument("--config", help=f"Path to JSON config (default: {CONFIG_FILE_PATH} if present)")
    parser.add_argument("--output", "-o", help="Output file (default: <directory>/sitemap.xml)")
    parser.add_argument("--stdout", action="store_true", help="Print the sitemap instead of writing a file")
    parser.add_argument("--ext", nargs="+", metavar="EXT", help="File extensions to include, e.g. .html .htm")
    parser.add_argument("--index", nargs="+", metavar="NAME", help="Directory index file names")
    parser.add_argument("--change-frequency", help="changefreq value for every generated entry")
    parser.add_argument("--priority", help="priority value for every generated entry")
    parser.add_argument("--no-last-modified", action="store_true", help="Do not emit lastmod from file mtimes")
    parser.add_argument("--no-include-sitemap", action="store_true",
                        help=f"Scan directories even if they contain a {EMBEDDED_SITEMAP}")
    parser.add_argument("--data-dir", help="Write CSV snapshot and change log to this directory")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    return parser


def resolve_settings(args: argparse.Namespace) -> Optional[Dict[str, Any]]:
    """
    3.0 Merge config file and command-line flags into one settings dict.

    Returns:
        Settings dict, or None if a required config could not be loaded
    """
    config: Dict[str, Any] = {}
    config_path = args.config
    if config_path is None and os.path.exists(CONFIG_FILE_PATH):
        config_path = CONFIG_FILE_PATH

    if config_path is not None:
        loaded = load_config(config_path)
        if loaded is None:
            return None
        config = loaded

    directory = args.directory or config.get("directory")
    if not directory:
        logger.error("No site directory given on the command line or in config.")
        return None

    options = build_scanner_options(config)
    if args.ext:
        options["ext"] = args.ext
    if args.index:
        options["index"] = args.index
    if args.change_frequency:
        options["change_frequency"] = args.change_frequency
    if args.priority:
        options["priority"] = args.priority
    if args.no_last_modified:
        options["last_modified"] = False
    if args.no_include_sitemap:
        options["include_sitemap"] = False

    output = args.output or config.get("output") or os.path.join(directory, EMBEDDED_SITEMAP)

    return {
        "directory": directory,
        "output": output,
        "data_directory": args.data_dir or config.get("data_directory"),
        "log_file": config.get("log_file"),
        "options": options,
    }


def run(settings: Dict[str, Any], to_stdout: bool = False) -> int:
    """
    4.0 Generate, write and optionally snapshot the sitemap.

    Returns:
        Process exit code
    """
    directory = settings["directory"]
    options = settings["options"]

    output = settings["output"]
    if options.get("include_sitemap") and not to_stdout:
        if os.path.abspath(output) == os.path.abspath(os.path.join(directory, EMBEDDED_SITEMAP)):
            # a previous run's output would be read back as an embedded sitemap
            logger.warning(
                f"Output {output} is the site root's {EMBEDDED_SITEMAP} and include_sitemap is on; "
                "the existing file will replace the scan of the root directory"
            )

    try:
        sitemap = SitemapGenerator(options).generate(directory)
    except SitemapError as e:
        logger.error(f"FAILED generating sitemap for {directory}: {type(e).__name__}: {e}")
        if e.__cause__ is not None:
            logger.debug(f"Caused by: {e.__cause__!r}")
        return 1

    if to_stdout:
        sys.stdout.write(sitemap.to_xml())
    else:
        try:
            sitemap.write(output)
        except OSError as e:
            logger.error(f"FAILED writing {output}: {e}")
            return 1

    data_dir = settings.get("data_directory")
    if data_dir:
        name = os.path.basename(os.path.normpath(os.path.abspath(directory))) or "site"
        try:
            DataProcessor(data_dir=data_dir).process_sitemap(name, sitemap)
        except OSError as e:
            logger.error(f"FAILED saving snapshot to {data_dir}: {e}")
            return 1

    logger.info(f"Sitemap: {len(sitemap.entries)} entries from {directory}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """
    5.0 Main function.

    Flow:
    1. Parse arguments, load config
    2. Scan the site directory
    3. Write sitemap.xml (or print it)
    4. Save CSV snapshot and change log if a data directory is set
    """
    args = build_arg_parser().parse_args(argv)

    settings = resolve_settings(args)
    if settings is None:
        logger.error("Failed to load configuration. Exiting.")
        return 1

    setup_logging(verbose=args.verbose, log_file=settings.get("log_file"))

    logger.info("=" * 60)
    logger.info("Starting sitemap generation")
    logger.info(f"Run timestamp: {datetime.now(timezone.utc).isoformat()}")
    logger.info("=" * 60)

    return run(settings, to_stdout=args.stdout)


if __name__ == "__main__":
    sys.exit(main())
