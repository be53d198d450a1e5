"""
exceptions.py

Centralized custom exception types for the library.

This file defines a small hierarchy of exceptions used across the registry,
inspector, reconciler and operations modules. Each error carries an optional
numeric code and the offending path (if any) for easier debugging.
"""

from pathlib import Path
from typing import Optional, Union


class LodestoneError(Exception):
    """
    Base class for all library-specific exceptions.

    Attributes
    ----------
    message: str
        Human readable error message.
    code: Optional[int]
        HTTP status code or internal error code if applicable.
    path: Optional[str]
        File, directory or URL the error relates to.
    """

    def __init__(self, message: str, code: Optional[int] = None, path: Optional[Union[str, Path]] = None):
        self.message = message
        self.code = code
        self.path = str(path) if path is not None else None
        # call base with a string representation so exceptions print nicely
        super().__init__(self.__str__())

    def __str__(self) -> str:
        base = self.message
        if self.path is not None:
            base += f" [{self.path}]"
        if self.code is not None:
            base += f" (code={self.code})"
        return base

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} code={self.code!r} path={self.path!r} message={self.message!r}>"


class FileAccessError(LodestoneError):
    """Missing or unreadable file/directory, or permission denied."""


class ParseError(LodestoneError):
    """Structured content (registry or manifest) could not be parsed."""


class RegistryParseError(ParseError):
    """Raised when a registry document does not match the expected shape."""


class ManifestError(ParseError):
    """
    Raised when a manifest entry inside an archive matched by name but failed to parse.

    The archive path is stored in `path`, the entry name inside the archive in `entry`.
    """

    def __init__(self, message: str, path: Optional[Union[str, Path]] = None, entry: Optional[str] = None):
        self.entry = entry
        if entry:
            message = f"{message} (entry {entry!r})"
        super().__init__(message, path=path)


class ArchiveFormatError(LodestoneError):
    """Corrupt or non-zip container."""


class UserInputError(LodestoneError):
    """Invalid tag / operation selection or a missing confirmation."""


class SessionStateError(UserInputError):
    """Raised when calls are made out of the load -> scan -> operate order."""


class RemoteRegistryError(LodestoneError):
    """HTTP failure while fetching a registry document."""


def map_http_status(status_code: int, message: str = "", url: Optional[str] = None) -> RemoteRegistryError:
    """
    Convert an HTTP status code + message into a RemoteRegistryError.

    Parameters
    ----------
    status_code : int
        HTTP status code returned by the server.
    message : str
        Response text or short explanation.
    url : Optional[str]
        Requested URL, attached as the error path.
    """
    if status_code == 404:
        return RemoteRegistryError(message or "Registry not found", status_code, url)
    if status_code in (401, 403):
        return RemoteRegistryError(message or "Access to registry denied", status_code, url)
    if status_code == 429:
        return RemoteRegistryError(message or "Rate Limited", status_code, url)
    if 500 <= status_code <= 599:
        return RemoteRegistryError(message or "Server Error", status_code, url)
    # fallback
    return RemoteRegistryError(message or f"HTTP {status_code}", status_code, url)
