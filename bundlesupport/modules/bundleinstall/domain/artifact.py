"""Domain objects describing Maven artifacts."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from .constants import COORDINATE_SEPARATOR, DEFAULT_PACKAGING, SNAPSHOT_SUFFIX
from .exceptions import InvalidCoordinateFormatError


@dataclass(frozen=True)
class ArtifactCoordinates:
    """Represents a Maven artifact coordinate."""

    groupid: str
    artifactid: str
    version: str
    extension: str = DEFAULT_PACKAGING
    classifier: Optional[str] = None

    @classmethod
    def from_coordinate_string(cls, coordinate: str) -> "ArtifactCoordinates":
        """Parse ``groupId:artifactId:version[:packaging[:classifier]]``."""
        # empty segments from repeated separators are ignored
        tokens = [token for token in coordinate.split(COORDINATE_SEPARATOR) if token]
        if len(tokens) not in (3, 4, 5):
            raise InvalidCoordinateFormatError(coordinate)
        groupid, artifactid, version = tokens[:3]
        extension = tokens[3] if len(tokens) >= 4 else DEFAULT_PACKAGING
        classifier = tokens[4] if len(tokens) == 5 else None
        return cls(groupid, artifactid, version, extension, classifier)

    @property
    def is_snapshot(self) -> bool:
        return self.version.endswith(SNAPSHOT_SUFFIX)

    def file_name(self, version: Optional[str] = None) -> str:
        name = f"{self.artifactid}-{version or self.version}"
        if self.classifier:
            name += f"-{self.classifier}"
        return f"{name}.{self.extension}"

    @property
    def path_segments(self) -> List[str]:
        group_path = self.groupid.replace(".", "/")
        return [group_path, self.artifactid, self.version, self.file_name()]

    def __str__(self) -> str:
        parts = [self.groupid, self.artifactid, self.extension]
        if self.classifier:
            parts.append(self.classifier)
        parts.append(self.version)
        return ":".join(parts)
