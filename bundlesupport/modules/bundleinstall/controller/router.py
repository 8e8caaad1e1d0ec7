"""FastAPI routes for the install-file operation."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, Field

from bundlesupport.modules.bundleinstall.domain import (
    BundleInstallError,
    InstallFileParams,
    InvalidCoordinateFormatError,
    MissingParametersError,
    ResolutionFailedError,
)
from bundlesupport.modules.bundleinstall.domain.constants import DEFAULT_PACKAGING
from bundlesupport.modules.bundleinstall.service import BundleInstallFileService

log = logging.getLogger(__name__)

router = APIRouter(prefix="/bundlesupport", tags=["bundle-install"])


class InstallFilePayload(BaseModel):
    file: Optional[str] = None
    groupId: Optional[str] = None
    artifactId: Optional[str] = None
    version: Optional[str] = None
    packaging: str = Field(DEFAULT_PACKAGING)
    classifier: Optional[str] = None
    artifact: Optional[str] = None

    def to_params(self) -> InstallFileParams:
        return InstallFileParams(
            file=self.file,
            groupid=self.groupId,
            artifactid=self.artifactId,
            version=self.version,
            packaging=self.packaging or DEFAULT_PACKAGING,
            classifier=self.classifier,
            artifact=self.artifact,
        )


def get_service(request: Request) -> BundleInstallFileService:
    container = getattr(request.app.state, "container", None)
    if not container or not getattr(container, "install_file_service", None):
        raise HTTPException(status_code=500, detail="Install file service not initialized.")
    return container.install_file_service


@router.post("/install-file")
def install_file(
    payload: InstallFilePayload,
    svc: BundleInstallFileService = Depends(get_service),
):
    try:
        result = svc.execute(payload.to_params())
    except (MissingParametersError, InvalidCoordinateFormatError) as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except (ResolutionFailedError, BundleInstallError) as exc:
        log.exception("install-file failed")
        detail = str(exc)
        if exc.__cause__ is not None:
            detail = f"{detail} {exc.__cause__}"
        raise HTTPException(status_code=502, detail=detail) from exc
    return result.as_dict()
