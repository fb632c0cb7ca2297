import json
import logging
import numbers
import os
from typing import Dict, Optional, Any

from dirsitemap.dates import parse_date
from dirsitemap.errors import InvalidDateFormat
from dirsitemap.generator import DEFAULT_OPTIONS

logger = logging.getLogger(__name__)

CONFIG_FILE_PATH = "config.json"

def load_config(path: str = CONFIG_FILE_PATH) -> Optional[Dict[str, Any]]:
    """Loads the configuration from a JSON file (config.json by default)."""
    if not os.path.exists(path):
        logger.error(f"Configuration file not found: {path}")
        return None
    try:
        with open(path, 'r', encoding='utf-8') as f:
            config_data = json.load(f)
        logger.info(f"Successfully loaded configuration from {path}")
        if not validate_config(config_data):
            return None
        return config_data
    except json.JSONDecodeError as e:
        logger.error(f"Error decoding JSON from {path}: {e}")
        return None
    except OSError as e:
        logger.error(f"Could not read configuration file {path}: {e}")
        return None

def _is_string_list(value: Any) -> bool:
    return isinstance(value, list) and all(isinstance(v, str) for v in value)

def validate_options(options: Any) -> bool:
    """Validates the scanner 'options' block."""
    if not isinstance(options, dict):
        logger.error("'options' must be a dictionary.")
        return False

    for key in ("ext", "index"):
        if key in options and not _is_string_list(options[key]):
            logger.error(f"'options.{key}' must be a list of strings.")
            return False

    for key in ("include_sitemap", "follow_symlinks"):
        if key in options and not isinstance(options[key], bool):
            logger.error(f"'options.{key}' must be true or false.")
            return False

    if "last_modified" in options:
        last_modified = options["last_modified"]
        if isinstance(last_modified, str):
            try:
                parse_date(last_modified)
            except InvalidDateFormat as e:
                logger.error(f"'options.last_modified' is not a W3C date: {e}")
                return False
        elif not isinstance(last_modified, bool) and last_modified is not None:
            logger.error("'options.last_modified' must be true, false or a W3C date string.")
            return False

    if "priority" in options and options["priority"] is not None:
        priority = options["priority"]
        if isinstance(priority, bool):
            logger.error("'options.priority' must be a number.")
            return False
        if not isinstance(priority, numbers.Real):
            try:
                float(priority)
            except (TypeError, ValueError):
                logger.error(f"'options.priority' must be a number, got {priority!r}.")
                return False

    if "change_frequency" in options and options["change_frequency"] is not None:
        if not isinstance(options["change_frequency"], str):
            logger.error("'options.change_frequency' must be a string.")
            return False

    if "prefix" in options and not isinstance(options["prefix"], str):
        logger.error("'options.prefix' must be a string.")
        return False

    return True

def validate_config(config: Dict[str, Any]) -> bool:
    """Validates the structure and content of the configuration."""
    if not isinstance(config, dict):
        logger.error("Configuration must be a dictionary.")
        return False

    if "directory" not in config or not isinstance(config["directory"], str) or not config["directory"].strip():
        logger.error("'directory' key is missing or not a non-empty string in config.")
        return False

    for key in ("output", "data_directory", "log_file"):
        if key in config and config[key] is not None:
            if not isinstance(config[key], str) or not config[key].strip():
                logger.error(f"Value for key '{key}' must be a non-empty string.")
                return False

    if "options" in config and not validate_options(config["options"]):
        return False

    unknown = set(config.get("options", {})) - set(DEFAULT_OPTIONS) - {"change_frequency", "priority", "prefix"}
    if unknown:
        # passed through to callbacks, so not an error
        logger.warning(f"Unrecognized scanner options will be passed through: {sorted(unknown)}")

    logger.info("Configuration validation successful.")
    return True

def build_scanner_options(config: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Merges the config's 'options' block over the scanner defaults."""
    return {**DEFAULT_OPTIONS, **((config or {}).get("options") or {})}

if __name__ == '__main__':
    # Basic test for the config loader
    logging.basicConfig(level=logging.INFO)
    config = load_config()
    if config:
        logger.info(f"Site directory: {config.get('directory')}")
        logger.info(f"Scanner options: {build_scanner_options(config)}")
    else:
        logger.error("Failed to load or validate configuration.")
