"""Errors raised while resolving and installing bundles."""

from __future__ import annotations

from typing import Dict, Optional

from .constants import COORDINATE_FORMAT


class BundleSupportError(RuntimeError):
    """Base class for all bundle support failures."""


class MissingParametersError(BundleSupportError):
    """Neither a bundle file nor artifact coordinates were supplied."""


class InvalidCoordinateFormatError(BundleSupportError):
    """A coordinate string does not have 3, 4 or 5 segments."""

    def __init__(self, coordinate: str) -> None:
        super().__init__(f"Invalid artifact, you must specify {COORDINATE_FORMAT} {coordinate}")
        self.coordinate = coordinate


class ResolutionFailedError(BundleSupportError):
    """The repository client could not provide the requested artifact."""


class ArtifactResolutionError(BundleSupportError):
    """Raised by the repository client when no repository yields the artifact."""

    def __init__(self, message: str, errors: Optional[Dict[str, str]] = None) -> None:
        self.errors = dict(errors or {})
        if self.errors:
            details = "; ".join(f"{repo}: {reason}" for repo, reason in self.errors.items())
            message = f"{message} ({details})"
        super().__init__(message)


class ChecksumFailureError(ArtifactResolutionError):
    """Downloaded content does not match the published checksum."""


class BundleInstallError(BundleSupportError):
    """The target instance rejected the bundle upload."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code
