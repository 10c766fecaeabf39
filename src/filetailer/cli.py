import argparse
import asyncio
import logging
import signal
import sys
from typing import List, Optional

import requests

from .alerts import send_slack
from .helpers import DEFAULT_CONFIG, ConfigError, load_config, setup_logging, validate_config
from .tailer import FileTailer

logger = logging.getLogger("filetailer")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="filetailer",
        description="Follow a CRLF-delimited log file across rotation"
    )
    parser.add_argument(
        "path",
        nargs="?",
        help="File to follow (overrides log_file from --config)"
    )
    parser.add_argument(
        "--config",
        help="Path to a configuration JSON file"
    )
    parser.add_argument("--chunk-size", type=int, help="Bytes per read")
    parser.add_argument("--retry-interval", type=float, help="Seconds between watch attempts while the file is missing")
    parser.add_argument("--log-level", help="Logging level for stderr (default INFO)")
    parser.add_argument("--slack-webhook", help="Also send log records to this Slack webhook")
    parser.add_argument(
        "--test-alert",
        action="store_true",
        help="Send a test message to the Slack webhook and exit"
    )
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> dict:
    config = load_config(args.config) if args.config else dict(DEFAULT_CONFIG)
    overrides = {
        "log_file": args.path,
        "chunk_size": args.chunk_size,
        "retry_interval": args.retry_interval,
        "log_level": args.log_level,
        "slack_webhook": args.slack_webhook,
    }
    config.update({k: v for k, v in overrides.items() if v is not None})
    return validate_config(config)


def run_test_alert(config: dict) -> bool:
    if not config["slack_webhook"]:
        print("No slack_webhook configured", file=sys.stderr)
        return False
    try:
        return send_slack(config["slack_webhook"], "[filetailer] Test alert")
    except requests.RequestException as e:
        print(f"Slack send failed: {e}", file=sys.stderr)
        return False


async def follow(config: dict, out=None) -> None:
    out = out if out is not None else sys.stdout
    tailer = FileTailer(
        config["log_file"],
        logger,
        chunk_size=config["chunk_size"],
        retry_interval=config["retry_interval"],
    )
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, tailer.stop)
        except (NotImplementedError, RuntimeError):
            pass

    async with tailer:
        async for line in tailer.watch():
            out.write(line + "\n")
            out.flush()


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)

    try:
        config = build_config(args)
    except ConfigError as e:
        print(f"Failed to load config: {e}", file=sys.stderr)
        return 1

    setup_logging(config)

    if args.test_alert:
        return 0 if run_test_alert(config) else 1

    if not config["log_file"]:
        print("No file to follow: pass a path or set log_file in --config", file=sys.stderr)
        return 1

    try:
        asyncio.run(follow(config))
    except KeyboardInterrupt:
        pass
    except OSError as e:
        logger.error("Tailing %s failed: %s", config["log_file"], e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
