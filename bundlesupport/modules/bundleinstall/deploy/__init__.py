from .installer import BundleInstaller, SlingBundleInstaller

__all__ = ["BundleInstaller", "SlingBundleInstaller"]
