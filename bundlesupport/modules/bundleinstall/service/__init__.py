from .install_file import BundleInstallFileService, RepositorySystem, with_update_policy

__all__ = ["BundleInstallFileService", "RepositorySystem", "with_update_policy"]
