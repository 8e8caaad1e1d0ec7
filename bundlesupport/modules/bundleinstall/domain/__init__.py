from .artifact import ArtifactCoordinates
from .exceptions import (
    ArtifactResolutionError,
    BundleInstallError,
    BundleSupportError,
    ChecksumFailureError,
    InvalidCoordinateFormatError,
    MissingParametersError,
    ResolutionFailedError,
)
from .models import BundleInstallResult, InstallFileParams
from .repository import (
    ArtifactRequest,
    ArtifactResult,
    RemoteRepository,
    RepositoryPolicy,
    RepositorySession,
)

__all__ = [
    "ArtifactCoordinates",
    "ArtifactRequest",
    "ArtifactResult",
    "ArtifactResolutionError",
    "BundleInstallError",
    "BundleInstallResult",
    "BundleSupportError",
    "ChecksumFailureError",
    "InstallFileParams",
    "InvalidCoordinateFormatError",
    "MissingParametersError",
    "RemoteRepository",
    "RepositoryPolicy",
    "RepositorySession",
    "ResolutionFailedError",
]
