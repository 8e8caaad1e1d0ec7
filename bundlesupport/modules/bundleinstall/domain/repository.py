"""Remote repository descriptors and resolution request/result objects."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, List, Optional, Tuple

from .artifact import ArtifactCoordinates
from .constants import (
    CHECKSUM_POLICY_WARN,
    REPOSITORY_ID_SEPARATOR,
    UPDATE_POLICY_DAILY,
)


@dataclass(frozen=True)
class RepositoryPolicy:
    """How a remote repository is consulted."""

    enabled: bool = True
    update_policy: str = UPDATE_POLICY_DAILY
    checksum_policy: str = CHECKSUM_POLICY_WARN


@dataclass(frozen=True)
class RemoteRepository:
    id: str
    url: str
    policy: RepositoryPolicy = field(default_factory=RepositoryPolicy)
    username: Optional[str] = None
    password: Optional[str] = field(default=None, repr=False)

    @classmethod
    def parse(
        cls,
        value: str,
        *,
        index: int = 0,
        policy: Optional[RepositoryPolicy] = None,
        username: Optional[str] = None,
        password: Optional[str] = None,
    ) -> "RemoteRepository":
        """Build a repository from ``url`` or ``id::url``."""
        repo_id, sep, url = value.strip().partition(REPOSITORY_ID_SEPARATOR)
        if not sep:
            repo_id, url = f"remote-{index}", repo_id
        if not repo_id or not url:
            raise ValueError(f"invalid repository '{value}', expected url or id::url")
        return cls(
            id=repo_id,
            url=url.rstrip("/"),
            policy=policy or RepositoryPolicy(),
            username=username,
            password=password,
        )

    @property
    def auth(self) -> Optional[Tuple[str, str]]:
        if self.username and self.password:
            return (self.username, self.password)
        return None

    def with_policy(self, policy: RepositoryPolicy) -> "RemoteRepository":
        return replace(self, policy=policy)


@dataclass(frozen=True)
class RepositorySession:
    local_repository: Path
    offline: bool = False


@dataclass
class ArtifactRequest:
    artifact: ArtifactCoordinates
    repositories: List[RemoteRepository] = field(default_factory=list)
    request_context: Optional[Any] = None


@dataclass
class ArtifactResult:
    artifact: ArtifactCoordinates
    file: Path
    repository: Optional[RemoteRepository] = None
