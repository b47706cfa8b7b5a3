"""
Centralized logging configuration for the job board.

Every record written for a request carries the request id and the account
id, both as a "[req:..] [acct:..]" message prefix and as record attributes,
so the json format can be filtered by request in a log aggregator.
"""

import logging
import os
import sys
from typing import TYPE_CHECKING, Any, MutableMapping, Optional, Tuple

if TYPE_CHECKING:
    from jobboard.common.auth_context import AuthContext


def is_debug_mode() -> bool:
    """DEBUG_MODE=true forces DEBUG level on contextual loggers."""
    return os.getenv("DEBUG_MODE", "false").lower() == "true"


class AppLogger(logging.LoggerAdapter):
    """
    Logger adapter bound to one request.

    Prefixes every message with the short request id and the account id
    when known, and attaches both to the record as `request_id` and
    `account_id`.
    """

    def __init__(
        self,
        name: str,
        request_id: Optional[str] = None,
        account_id: Optional[str] = None,
        debug_mode: Optional[bool] = None
    ):
        super().__init__(logging.getLogger(name), {
            "request_id": request_id or "-",
            "account_id": account_id or "-",
        })
        self.request_id = request_id
        self.account_id = account_id

        if debug_mode is None:
            debug_mode = is_debug_mode()
        if debug_mode:
            self.logger.setLevel(logging.DEBUG)

    @property
    def level(self) -> int:
        return self.logger.level

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> Tuple[Any, MutableMapping[str, Any]]:
        prefix = []
        if self.request_id:
            prefix.append(f"[req:{self.request_id[:8]}]")
        if self.account_id:
            prefix.append(f"[acct:{self.account_id}]")
        if prefix:
            msg = f"{' '.join(prefix)} {msg}"

        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs


class _RequestDefaults(logging.Filter):
    """Fills request_id/account_id on records logged outside a request."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "request_id"):
            record.request_id = "-"
        if not hasattr(record, "account_id"):
            record.account_id = "-"
        return True


def setup_logging(level: str = "INFO", format: str = "simple") -> None:
    """
    Configure the root logger.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        format: "simple" for humans, "json" for log aggregators
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)
    handler.addFilter(_RequestDefaults())

    if format == "json":
        formatter = logging.Formatter(
            '{"time": "%(asctime)s", "level": "%(levelname)s", "name": "%(name)s", '
            '"request_id": "%(request_id)s", "account_id": "%(account_id)s", "message": "%(message)s"}'
        )
    else:
        formatter = logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        )

    handler.setFormatter(formatter)
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)


def get_logger(
    name: str,
    request_id: Optional[str] = None,
    account_id: Optional[str] = None,
    debug_mode: Optional[bool] = None
) -> AppLogger:
    """Contextual logger; without ids it behaves like logging.getLogger(name)."""
    return AppLogger(name, request_id, account_id, debug_mode)


def request_logger(name: str, ctx: "AuthContext") -> AppLogger:
    """Logger tagged with the caller of the current request."""
    return AppLogger(name, ctx.request_id, ctx.account_id)
