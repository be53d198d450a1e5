from __future__ import annotations

import logging
import math
import requests
from decimal import Decimal
from packaging import version
from typing import *
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

__all__ = [
    "logger_setup",
    "session_factory",
    "normalize_version",
    "compare_versions",
    "decode_text",
]

DEFAULT_USER_AGENT = "lodestone/0.1"

def logger_setup(name: str,
                 level: int = logging.INFO,
                 *,
                 log_to_file: Optional[str] = None,
                 file_level: Optional[int] = None,
                 fmt: str = "%(asctime)s %(name)s %(levelname)s: %(message)s",
                 datefmt: str = "%Y-%m-%d %H:%M:%S") -> logging.Logger:
    """
    Create and return a configured logger for the library.

    Behavior:
        - Creates a logger with the given `name`.
        - Adds a console (StreamHandler) with the given `level`.
        - If `log_to_file` is provided, also adds a FileHandler.
          The file handler level defaults to `level` unless `file_level` is set.
        - Multiple calls with the same `name` will not duplicate handlers (idempotent).

    Parameters
    ----------
    name : str
        Logger name (usually package name).
    level : int
        Logging level for console (e.g., logging.INFO).
    log_to_file : Optional[str]
        If provided, path of file to log to (created if missing).
    file_level : Optional[int]
        Logging level for file handler (defaults to `level` if None).
    fmt : str
        Log message format string.
    datefmt : str
        Date format used by formatter.

    Returns
    -------
    logging.Logger
        Configured logger instance.

    Example
    -------
    >>> logger = logger_setup("lodestone", level=logging.DEBUG, log_to_file="lodestone.log")
    >>> logger.info("ready")
    """
    logger = logging.getLogger(name)
    logger.setLevel(min(level, file_level if file_level is not None else level))

    # Avoid adding handlers repeatedly
    if not getattr(logger, "_lodestone_setup_done", False):
        formatter = logging.Formatter(fmt=fmt, datefmt=datefmt)

        ch = logging.StreamHandler()
        ch.setLevel(level)
        ch.setFormatter(formatter)
        logger.addHandler(ch)

        if log_to_file:
            fh = logging.FileHandler(log_to_file, encoding="utf-8")
            fh.setLevel(file_level if file_level is not None else level)
            fh.setFormatter(formatter)
            logger.addHandler(fh)

        logger._lodestone_setup_done = True

    return logger

def session_factory(user_agent: Optional[str] = None,
                    *,
                    pool_maxsize: int = 4,
                    max_retries: int = 3,
                    backoff_factor: float = 0.6,
                    status_forcelist: Optional[Iterable[int]] = (429, 500, 502, 503, 504),
                    default_headers: Optional[Dict[str, str]] = None) -> requests.Session:
    """
    Create a configured requests.Session for fetching registry documents.

    Features:
      - Sets default headers (Accept, User-Agent)
      - Installs an HTTPAdapter with connection pooling and optional urllib3 Retry

    Parameters
    ----------
    user_agent : Optional[str]
        User-Agent string to set. If None, DEFAULT_USER_AGENT is used.
    pool_maxsize : int
        Max connection pool size for the adapter.
    max_retries : int
        Number of retries handled by urllib3.Retry. If 0, retries disabled.
    backoff_factor : float
        Backoff factor for urllib3.Retry (exponential backoff).
    status_forcelist : Iterable[int]
        HTTP statuses that trigger a retry (when max_retries > 0).
    default_headers : Optional[Dict[str,str]]
        Additional headers to set on session.headers (merged with defaults).

    Returns
    -------
    requests.Session
    """
    session = requests.Session()

    headers = {
        "Accept": "application/json",
        "User-Agent": user_agent or DEFAULT_USER_AGENT
    }
    if default_headers:
        headers.update(default_headers)
    session.headers.update(headers)

    if max_retries and max_retries > 0:
        retry = Retry(
            total=max_retries,
            read=max_retries,
            connect=max_retries,
            backoff_factor=backoff_factor,
            status_forcelist=tuple(status_forcelist or ()),
            raise_on_status=False,
            allowed_methods=frozenset(["GET", "HEAD"])
        )
        adapter = HTTPAdapter(max_retries=retry, pool_maxsize=pool_maxsize)
    else:
        adapter = HTTPAdapter(pool_maxsize=pool_maxsize)

    session.mount("https://", adapter)
    session.mount("http://", adapter)
    return session

def normalize_version(value: Any) -> Optional[str]:
    """
    Normalize a manifest version value to text.

    Strings are kept as-is, integers and floats become their canonical decimal
    text. Anything else (booleans, tables, arrays, missing) yields None.

    >>> normalize_version("1.2.0"), normalize_version(3), normalize_version(1.5)
    ('1.2.0', '3', '1.5')
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if not math.isfinite(value):
            return None
        # positional notation, shortest round-trip digits
        return format(Decimal(repr(value)), "f")
    return None

def compare_versions(detected: Optional[str], expected: Optional[str]) -> Optional[str]:
    """
    Describe how a detected version relates to the expected one.

    Returns "match" for identical strings, "older"/"newer" when both parse as
    PEP 440 versions, "different" when they don't, and None if either is missing.
    Only informational: full matches are decided on exact string equality.
    """
    if detected is None or expected is None:
        return None
    if detected == expected:
        return "match"
    try:
        d, e = version.parse(detected), version.parse(expected)
    except version.InvalidVersion:
        return "different"
    if d < e:
        return "older"
    if d > e:
        return "newer"
    return "different"

def decode_text(data: bytes) -> str:
    """Decode manifest/registry bytes as UTF-8, tolerating a leading BOM."""
    return data.decode("utf-8-sig")
