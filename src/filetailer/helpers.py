import json
import logging

from .alerts import SlackHandler

DEFAULT_CONFIG = {
    "log_file": "",
    "chunk_size": 1024,
    "retry_interval": 0.1,
    "log_level": "INFO",
    "slack_webhook": "",
    "slack_level": "WARNING",
}

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s %(message)s"


class ConfigError(ValueError):
    pass


def load_config(path: str) -> dict:
    """Load a JSON config file on top of DEFAULT_CONFIG."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        raise ConfigError(f"Config file not found: {path}")
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in {path}: {e}")
    if not isinstance(data, dict):
        raise ConfigError(f"Config in {path} must be a JSON object")

    unknown = set(data) - set(DEFAULT_CONFIG)
    if unknown:
        raise ConfigError(f"Unknown config keys: {', '.join(sorted(unknown))}")

    config = dict(DEFAULT_CONFIG)
    config.update(data)
    return validate_config(config)


def validate_config(config: dict) -> dict:
    if not isinstance(config["log_file"], str):
        raise ConfigError("log_file must be a string")

    chunk_size = config["chunk_size"]
    if isinstance(chunk_size, bool) or not isinstance(chunk_size, int) or chunk_size <= 0:
        raise ConfigError("chunk_size must be a positive integer")

    retry_interval = config["retry_interval"]
    if isinstance(retry_interval, bool) or not isinstance(retry_interval, (int, float)) or retry_interval <= 0:
        raise ConfigError("retry_interval must be a positive number")
    config["retry_interval"] = float(retry_interval)

    for key in ("log_level", "slack_level"):
        level = config[key]
        if not isinstance(level, str) or not isinstance(logging.getLevelName(level.upper()), int):
            raise ConfigError(f"{key} must be a logging level name, got {level!r}")
        config[key] = level.upper()

    if not isinstance(config["slack_webhook"], str):
        raise ConfigError("slack_webhook must be a string")
    return config


def setup_logging(config: dict) -> None:
    """Log to stderr, and to Slack as well when a webhook is configured."""
    logging.basicConfig(level=config["log_level"], format=LOG_FORMAT)
    if config.get("slack_webhook"):
        handler = SlackHandler(config["slack_webhook"], level=config["slack_level"])
        handler.setFormatter(logging.Formatter("[filetailer] %(levelname)s %(message)s"))
        logging.getLogger().addHandler(handler)
