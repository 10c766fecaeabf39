import logging

import requests

from . import __version__

USER_AGENT = f"filetailer/{__version__}"


def send_slack(webhook: str, text: str) -> bool:
    if not webhook:
        return False
    payload = {"text": text}
    headers = {"User-Agent": USER_AGENT}
    r = requests.post(webhook, json=payload, headers=headers, timeout=10)
    return r.status_code in (200, 201, 202)


class SlackHandler(logging.Handler):
    """
    Logging handler that posts formatted records to a Slack incoming webhook.
    """

    def __init__(self, webhook: str, level=logging.WARNING):
        super().__init__(level)
        self.webhook = webhook

    def emit(self, record: logging.LogRecord) -> None:
        try:
            if not send_slack(self.webhook, self.format(record)):
                raise RuntimeError(f"Slack webhook rejected record {record.msg!r}")
        except Exception:
            self.handleError(record)
