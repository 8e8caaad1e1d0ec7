"""Upload bundles to the Felix web console of a running Sling instance."""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Dict, Optional, Protocol

import httpx

from bundlesupport.modules.bundleinstall.domain import BundleInstallError, BundleInstallResult
from bundlesupport.settings import Settings


class BundleInstaller(Protocol):
    """Anything able to push a local bundle file to a running instance."""

    def install(self, bundle_file: Path) -> BundleInstallResult:  # pragma: no cover - interface
        ...


class SlingBundleInstaller:
    """Posts the bundle to ``<sling_url>/bundles`` the way the web console upload form does."""

    def __init__(self, settings: Settings, client: Optional[httpx.Client] = None) -> None:
        self.settings = settings
        self.console_url = settings.sling_url.rstrip("/")
        self.log = logging.getLogger(self.__class__.__name__)
        self._auth = (settings.sling_user, settings.sling_password) if settings.sling_user else None
        self._client = client or httpx.Client(timeout=settings.http_timeout, verify=True)

    def _form_fields(self) -> Dict[str, str]:
        fields = {
            "action": "install",
            "_noredir_": "_noredir_",
            "bundlestartlevel": str(self.settings.bundle_start_level),
        }
        if self.settings.bundle_start:
            fields["bundlestart"] = "start"
        if self.settings.refresh_packages:
            fields["refreshPackages"] = "true"
        return fields

    def install(self, bundle_file: Path) -> BundleInstallResult:
        bundle_file = Path(bundle_file)
        if not bundle_file.is_file():
            raise BundleInstallError(f"Bundle file {bundle_file} does not exist")

        url = f"{self.console_url}/bundles"
        self.log.info("Installing bundle %s to %s", bundle_file, url)
        start = time.perf_counter()
        with open(bundle_file, "rb") as fh:
            try:
                response = self._client.post(
                    url,
                    data=self._form_fields(),
                    files={"bundlefile": (bundle_file.name, fh, "application/java-archive")},
                    auth=self._auth,
                )
            except httpx.HTTPError as exc:
                raise BundleInstallError(f"Installation on {url} failed: {exc}") from exc

        if not response.is_success:
            raise BundleInstallError(
                f"Installation on {url} failed, cause: {response.status_code} {response.text.strip()}",
                status_code=response.status_code,
            )
        elapsed = time.perf_counter() - start
        self.log.info("Bundle %s installed (%d, %.2fs)", bundle_file.name, response.status_code, elapsed)
        return BundleInstallResult(
            success=True,
            message=f"Bundle {bundle_file.name} installed",
            bundle_file=bundle_file,
            status_code=response.status_code,
        )
