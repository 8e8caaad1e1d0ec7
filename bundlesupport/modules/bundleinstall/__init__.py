"""Bundle install module exports."""

from .service import BundleInstallFileService
from .controller import router as bundleinstall_router

__all__ = ["BundleInstallFileService", "bundleinstall_router"]
