"""Service wiring shared by the ASGI app and the command line."""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from .modules.bundleinstall.deploy import SlingBundleInstaller
from .modules.bundleinstall.fileget import MavenRepositorySystem
from .modules.bundleinstall.service import BundleInstallFileService
from .settings import Settings

log = logging.getLogger(__name__)


class ServiceContainer:
    """Holds the collaborators built from one Settings instance."""

    def __init__(self, settings: Settings, client: Optional[httpx.Client] = None) -> None:
        self.settings = settings
        self.repository_system = MavenRepositorySystem(settings, client=client)
        self.installer = SlingBundleInstaller(settings, client=client)
        self.install_file_service = BundleInstallFileService(
            self.repository_system,
            self.installer,
            session=self.repository_system.new_session(),
            repositories=self.repository_system.remote_repositories(),
            update_policy=settings.install_update_policy,
        )
        log.debug(
            "Services ready sling=%s localRepository=%s remotes=%s",
            settings.sling_url,
            settings.local_repository,
            [repo.id for repo in self.install_file_service.repositories],
        )
