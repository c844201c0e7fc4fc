import logging
import re
import time
from urllib.parse import urlsplit, urlunsplit

logger = logging.getLogger("nano-dbbackup")


def mask_connection_url(connection_url: str) -> str:
    """Replace the password of a connection URL with '***' for logging."""
    try:
        parts = urlsplit(connection_url)
    except ValueError:
        return "<invalid connection url>"

    if parts.password is None:
        return connection_url

    netloc = parts.netloc.rsplit("@", 1)[-1]
    userinfo = f"{parts.username}:***" if parts.username else ":***"
    return urlunsplit(parts._replace(netloc=f"{userinfo}@{netloc}"))


def redact_secrets(text: str, connection_url: str) -> str:
    """Strip the connection URL (and its password) out of tool output."""
    if not text:
        return text
    text = text.replace(connection_url, mask_connection_url(connection_url))
    try:
        password = urlsplit(connection_url).password
    except ValueError:
        password = None
    if password:
        text = re.sub(re.escape(password), "***", text)
    return text


class StageTimer:
    """Log pipeline stages with the elapsed time since construction."""

    def __init__(self, label: str = "Backup stage"):
        self.label = label
        self.start_time = time.monotonic()

    @property
    def elapsed(self) -> float:
        return time.monotonic() - self.start_time

    def log(self, stage: str) -> None:
        logger.info(f"[{self.elapsed:.2f}s] {self.label}: {stage}")
