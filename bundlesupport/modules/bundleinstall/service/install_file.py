"""Install a bundle given as a file path or as Maven coordinates."""

from __future__ import annotations

import logging
from dataclasses import replace
from pathlib import Path
from typing import Iterable, List, Optional, Protocol

from bundlesupport.modules.bundleinstall.deploy import BundleInstaller
from bundlesupport.modules.bundleinstall.domain import (
    ArtifactCoordinates,
    ArtifactRequest,
    ArtifactResolutionError,
    ArtifactResult,
    BundleInstallResult,
    InstallFileParams,
    MissingParametersError,
    RemoteRepository,
    RepositorySession,
    ResolutionFailedError,
)
from bundlesupport.modules.bundleinstall.domain.constants import (
    DEFAULT_PACKAGING,
    UPDATE_POLICY_ALWAYS,
)

log = logging.getLogger(__name__)


class RepositorySystem(Protocol):
    def resolve_artifact(self, session: RepositorySession, request: ArtifactRequest) -> ArtifactResult:
        ...  # pragma: no cover - interface


def with_update_policy(
    repositories: Iterable[RemoteRepository],
    update_policy: str,
) -> List[RemoteRepository]:
    """Copy ``repositories`` with every update policy set to ``update_policy``.

    Enabled flag and checksum policy are kept; order and length are preserved.
    """
    return [
        repo.with_policy(replace(repo.policy, update_policy=update_policy))
        for repo in repositories
    ]


class BundleInstallFileService:
    """Resolve the bundle to install and hand it to the installer.

    One of the following parameter sets must be given:

    * ``file``
    * ``groupid``, ``artifactid``, ``version``, ``packaging`` and optionally ``classifier``
    * ``artifact`` as ``groupId:artifactId:version[:packaging[:classifier]]``
    """

    def __init__(
        self,
        repository_system: RepositorySystem,
        installer: Optional[BundleInstaller] = None,
        *,
        session: RepositorySession,
        repositories: Optional[List[RemoteRepository]] = None,
        update_policy: str = UPDATE_POLICY_ALWAYS,
    ) -> None:
        self.repository_system = repository_system
        self.installer = installer
        self.session = session
        self.repositories = list(repositories or [])
        self.update_policy = update_policy

    def execute(self, params: InstallFileParams) -> BundleInstallResult:
        if self.installer is None:
            raise RuntimeError("no bundle installer configured")
        bundle_file = self.get_bundle_file(params)
        return self.installer.install(bundle_file)

    def get_bundle_file(self, params: InstallFileParams) -> Path:
        if params.file:
            return Path(params.file)
        if not params.artifactid and not params.artifact:
            raise MissingParametersError("Must provide either sling.file or sling.artifact parameters")
        return self._resolve_bundle_file_from_artifact(params)

    def _resolve_bundle_file_from_artifact(self, params: InstallFileParams) -> Path:
        if params.artifactid:
            missing = [
                name for name in ("groupid", "artifactid", "version") if not getattr(params, name)
            ]
            if missing:
                raise MissingParametersError(
                    f"Missing artifact coordinates: {', '.join(missing)}"
                )
            coords = ArtifactCoordinates(
                groupid=params.groupid,
                artifactid=params.artifactid,
                version=params.version,
                extension=params.packaging or DEFAULT_PACKAGING,
                classifier=params.classifier or None,
            )
        else:
            coords = ArtifactCoordinates.from_coordinate_string(params.artifact)

        resolved = self.resolve_artifact(coords).absolute()
        log.info("Resolved artifact to %s", resolved)
        return resolved

    def resolve_artifact(self, coords: ArtifactCoordinates) -> Path:
        request = ArtifactRequest(
            coords,
            with_update_policy(self.repositories, self.update_policy),
            None,
        )
        try:
            result = self.repository_system.resolve_artifact(self.session, request)
        except ArtifactResolutionError as exc:
            raise ResolutionFailedError(f"Artifact {coords} could not be resolved.") from exc
        return result.file
