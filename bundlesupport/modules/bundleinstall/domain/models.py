"""Dataclasses describing install-file invocations."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from .constants import DEFAULT_PACKAGING


@dataclass
class InstallFileParams:
    """Parameters of the install-file goal, one field per ``sling.*`` property."""

    file: Optional[str] = None
    groupid: Optional[str] = None
    artifactid: Optional[str] = None
    version: Optional[str] = None
    packaging: str = DEFAULT_PACKAGING
    classifier: Optional[str] = None
    artifact: Optional[str] = None


@dataclass
class BundleInstallResult:
    success: bool = False
    message: str = ""
    bundle_file: Optional[Path] = None
    status_code: Optional[int] = None

    def as_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"status": "true" if self.success else "false", "msg": self.message}
        if self.bundle_file is not None:
            payload["file"] = str(self.bundle_file)
        if self.status_code is not None:
            payload["statusCode"] = self.status_code
        return payload
