"""HTTP client resolving artifacts from Maven repositories."""

from __future__ import annotations

import hashlib
import logging
import os
import tempfile
import time
import xml.etree.ElementTree as ET
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import httpx

from bundlesupport.modules.bundleinstall.domain import (
    ArtifactCoordinates,
    ArtifactRequest,
    ArtifactResolutionError,
    ArtifactResult,
    ChecksumFailureError,
    RemoteRepository,
    RepositoryPolicy,
    RepositorySession,
)
from bundlesupport.modules.bundleinstall.domain.constants import (
    CHECKSUM_POLICY_FAIL,
    CHECKSUM_POLICY_IGNORE,
    ERROR_KEY_SUFFIX,
    LAST_UPDATED_SUFFIX,
)
from bundlesupport.settings import Settings

from .update_policy import is_update_required

MARKER_ENCODING = "iso-8859-1"
MARKER_HEADER = "#NOTE: This is a Maven Resolver internal implementation file, its format can be changed without prior notice."


class _ArtifactNotFound(Exception):
    """The repository answered 404 for the artifact."""


def _split_property(line: str) -> Optional[Tuple[str, str]]:
    """Key and value of a ``.properties`` line, ``None`` for comments and blanks."""
    stripped = line.lstrip()
    if not stripped or stripped[0] in "#!":
        return None
    key = []
    index = 0
    while index < len(stripped):
        char = stripped[index]
        if char == "\\" and index + 1 < len(stripped):
            key.append(stripped[index + 1])
            index += 2
            continue
        if char in "=:":
            return "".join(key).rstrip(), stripped[index + 1:].strip()
        key.append(char)
        index += 1
    return "".join(key).rstrip(), ""


def _escape_property_key(key: str) -> str:
    return "".join("\\" + char if char in "\\:=#! " else char for char in key)


class MavenRepositorySystem:
    """Resolve artifacts into the local repository, downloading them when needed."""

    def __init__(self, settings: Settings, client: Optional[httpx.Client] = None) -> None:
        self.settings = settings
        self.log = logging.getLogger(self.__class__.__name__)
        self._client = client or httpx.Client(
            timeout=settings.http_timeout,
            follow_redirects=True,
            verify=True,
        )

    def new_session(self) -> RepositorySession:
        return RepositorySession(
            local_repository=Path(self.settings.local_repository).expanduser(),
            offline=self.settings.offline,
        )

    def remote_repositories(self) -> List[RemoteRepository]:
        """Repositories configured in settings, with the configured policies."""
        policy = RepositoryPolicy(
            enabled=True,
            update_policy=self.settings.repository_update_policy,
            checksum_policy=self.settings.repository_checksum_policy,
        )
        return [
            RemoteRepository.parse(
                entry,
                index=index,
                policy=policy,
                username=self.settings.repository_username,
                password=self.settings.repository_password,
            )
            for index, entry in enumerate(self.settings.remote_repositories)
            if entry.strip()
        ]

    def resolve_artifact(self, session: RepositorySession, request: ArtifactRequest) -> ArtifactResult:
        try:
            return self._resolve(session, request)
        except OSError as exc:
            raise ArtifactResolutionError(
                f"Could not store artifact {request.artifact} in local repository "
                f"{session.local_repository}: {exc}"
            ) from exc

    def _resolve(self, session: RepositorySession, request: ArtifactRequest) -> ArtifactResult:
        coords = request.artifact
        target = session.local_repository.joinpath(*coords.path_segments)

        if target.exists() and not coords.is_snapshot:
            self.log.info("Reusing cached artifact %s -> %s", coords, target)
            return ArtifactResult(coords, target.resolve())
        if session.offline:
            if target.exists():
                self.log.info("Offline, using cached snapshot %s -> %s", coords, target)
                return ArtifactResult(coords, target.resolve())
            raise ArtifactResolutionError(
                f"Cannot access remote repositories in offline mode and artifact {coords} "
                "has not been downloaded from them before"
            )

        errors: Dict[str, str] = {}
        for repo in request.repositories:
            if not repo.policy.enabled:
                self.log.debug("Skipping disabled repository %s", repo.id)
                continue
            if target.exists():
                last_checked = datetime.fromtimestamp(target.stat().st_mtime)
                if not is_update_required(repo.policy.update_policy, last_checked):
                    self.log.info("Snapshot %s is up to date for %s", coords, repo.id)
                    return ArtifactResult(coords, target.resolve(), repo)
            else:
                missing_since = self._read_not_found(target, repo)
                if missing_since and not is_update_required(repo.policy.update_policy, missing_since):
                    errors[repo.id] = (
                        f"not found at {missing_since:%Y-%m-%d %H:%M:%S}, cached in the local repository; "
                        "resolution will not be reattempted until the update interval has elapsed"
                    )
                    continue
            try:
                self._download(repo, coords, target)
            except _ArtifactNotFound:
                self._record_not_found(target, repo)
                errors[repo.id] = "not found"
                continue
            except ChecksumFailureError as exc:
                self.log.warning("%s", exc)
                errors[repo.id] = str(exc)
                continue
            except httpx.HTTPError as exc:
                self.log.warning("Transfer of %s from %s failed: %s", coords, repo.url, exc)
                errors[repo.id] = str(exc) or exc.__class__.__name__
                continue
            self._clear_not_found(target, repo)
            return ArtifactResult(coords, target.resolve(), repo)

        if target.exists():
            self.log.warning("Could not refresh snapshot %s, using cached copy %s", coords, target)
            return ArtifactResult(coords, target.resolve())
        if not errors:
            raise ArtifactResolutionError(f"Could not find artifact {coords}, no enabled remote repositories")
        raise ArtifactResolutionError(f"Could not find artifact {coords}", errors)

    def _artifact_url(self, repo: RemoteRepository, coords: ArtifactCoordinates, file_name: str) -> str:
        group_path, artifactid, version, _ = coords.path_segments
        return f"{repo.url}/{group_path}/{artifactid}/{version}/{file_name}"

    def _download(self, repo: RemoteRepository, coords: ArtifactCoordinates, target: Path) -> None:
        file_name = coords.file_name()
        if coords.is_snapshot:
            file_name = self._snapshot_file_name(repo, coords) or file_name
        url = self._artifact_url(repo, coords, file_name)
        target.parent.mkdir(parents=True, exist_ok=True)
        fd, partial_name = tempfile.mkstemp(prefix=target.name + ".", suffix=".part", dir=target.parent)
        partial = Path(partial_name)
        self.log.info("Downloading artifact %s from %s url=%s", coords, repo.id, url)

        start_time = time.time()
        downloaded = 0
        digest = hashlib.sha1()
        try:
            with os.fdopen(fd, "wb") as fh:
                with self._client.stream("GET", url, auth=repo.auth) as response:
                    if response.status_code == 404:
                        raise _ArtifactNotFound(url)
                    response.raise_for_status()
                    for chunk in response.iter_bytes(65536):
                        if not chunk:
                            continue
                        fh.write(chunk)
                        digest.update(chunk)
                        downloaded += len(chunk)
            self._verify_checksum(repo, url, digest.hexdigest())
            partial.replace(target)
        finally:
            partial.unlink(missing_ok=True)

        elapsed = max(time.time() - start_time, 1e-3)
        self.log.info(
            "Downloaded artifact %s -> %s (%d bytes, %.2f MB/s, %.2fs)",
            coords,
            target,
            downloaded,
            (downloaded / 1024 / 1024) / elapsed,
            elapsed,
        )

    def _verify_checksum(self, repo: RemoteRepository, url: str, actual: str) -> None:
        policy = (repo.policy.checksum_policy or "").lower()
        if policy == CHECKSUM_POLICY_IGNORE:
            return
        expected: Optional[str] = None
        try:
            resp = self._client.get(url + ".sha1", auth=repo.auth)
            if resp.status_code == 200 and resp.text.strip():
                expected = resp.text.split()[0].strip().lower()
        except httpx.HTTPError as exc:
            self.log.debug("Checksum download for %s failed: %s", url, exc)
        if expected == actual:
            return
        message = f"Checksum validation failed for {url}, expected {expected or '<missing>'} but is {actual}"
        if policy == CHECKSUM_POLICY_FAIL:
            raise ChecksumFailureError(message)
        self.log.warning(message)

    def _snapshot_file_name(self, repo: RemoteRepository, coords: ArtifactCoordinates) -> Optional[str]:
        """Timestamped file name published in the version-level maven-metadata.xml."""
        url = self._artifact_url(repo, coords, "maven-metadata.xml")
        try:
            resp = self._client.get(url, auth=repo.auth)
        except httpx.HTTPError as exc:
            self.log.debug("Snapshot metadata %s unavailable: %s", url, exc)
            return None
        if resp.status_code != 200:
            return None
        try:
            root = ET.fromstring(resp.content)
        except ET.ParseError as exc:
            self.log.warning("Ignoring malformed snapshot metadata %s: %s", url, exc)
            return None

        for node in root.iterfind("versioning/snapshotVersions/snapshotVersion"):
            extension = node.findtext("extension") or ""
            classifier = node.findtext("classifier") or ""
            value = node.findtext("value")
            if value and extension == coords.extension and classifier == (coords.classifier or ""):
                return coords.file_name(value)

        timestamp = root.findtext("versioning/snapshot/timestamp")
        build_number = root.findtext("versioning/snapshot/buildNumber")
        if timestamp and build_number:
            return coords.file_name(coords.version.replace("SNAPSHOT", f"{timestamp}-{build_number}"))
        return None

    # ------------------------------------------------------------------ not-found markers
    # Maven Resolver properties format, shared with mvn in the same local repository:
    #   https\://repo.example.org/maven2/.lastUpdated=<epoch millis>
    #   https\://repo.example.org/maven2/.error=
    def _marker_path(self, target: Path) -> Path:
        return target.with_name(target.name + LAST_UPDATED_SUFFIX)

    @staticmethod
    def _marker_keys(repo: RemoteRepository) -> Tuple[str, str]:
        base = repo.url if repo.url.endswith("/") else repo.url + "/"
        return base + LAST_UPDATED_SUFFIX, base + ERROR_KEY_SUFFIX

    def _load_marker_lines(self, target: Path) -> List[str]:
        marker = self._marker_path(target)
        if not marker.exists():
            return []
        try:
            return marker.read_text(encoding=MARKER_ENCODING).splitlines()
        except OSError as exc:
            self.log.warning("Ignoring unreadable marker %s: %s", marker, exc)
            return []

    def _read_not_found(self, target: Path, repo: RemoteRepository) -> Optional[datetime]:
        updated_key, error_key = self._marker_keys(repo)
        values: Dict[str, str] = {}
        for line in self._load_marker_lines(target):
            entry = _split_property(line)
            if entry and entry[0] in (updated_key, error_key):
                values[entry[0]] = entry[1]
        # a non-empty error is a transfer failure, which is not cached
        if values.get(error_key) != "":
            return None
        try:
            return datetime.fromtimestamp(int(values[updated_key]) / 1000)
        except (KeyError, ValueError):
            return None

    def _without_repo_entries(self, lines: List[str], repo: RemoteRepository) -> List[str]:
        keys = self._marker_keys(repo)
        kept = []
        for line in lines:
            entry = _split_property(line)
            if entry and entry[0] in keys:
                continue
            kept.append(line)
        return kept

    def _record_not_found(self, target: Path, repo: RemoteRepository) -> None:
        lines = self._without_repo_entries(self._load_marker_lines(target), repo) or [MARKER_HEADER]
        updated_key, error_key = self._marker_keys(repo)
        lines.append(f"{_escape_property_key(updated_key)}={int(time.time() * 1000)}")
        lines.append(f"{_escape_property_key(error_key)}=")
        marker = self._marker_path(target)
        marker.parent.mkdir(parents=True, exist_ok=True)
        marker.write_text("\n".join(lines) + "\n", encoding=MARKER_ENCODING)

    def _clear_not_found(self, target: Path, repo: RemoteRepository) -> None:
        lines = self._load_marker_lines(target)
        kept = self._without_repo_entries(lines, repo)
        if len(kept) == len(lines):
            return
        marker = self._marker_path(target)
        if any(_split_property(line) for line in kept):
            marker.write_text("\n".join(kept) + "\n", encoding=MARKER_ENCODING)
        else:
            marker.unlink(missing_ok=True)
