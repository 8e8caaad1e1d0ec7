"""
Command line entrypoint.

Usage:
    bundlesupport install-file --file target/my-bundle.jar
    bundlesupport install-file --artifact org.apache.sling:org.apache.sling.api:2.27.0
    SLING_ARTIFACT=g:a:v bundlesupport install-file
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional, Tuple

import click

from . import __version__
from .bootstrap import ServiceContainer
from .logging_config import configure_logging
from .modules.bundleinstall.domain import BundleSupportError, InstallFileParams
from .modules.bundleinstall.domain.constants import DEFAULT_PACKAGING
from .settings import Settings


@click.group()
@click.version_option(version=__version__, prog_name="bundlesupport")
@click.option("--debug", is_flag=True, help="Enable debug logging.")
@click.pass_context
def cli(ctx: click.Context, debug: bool) -> None:
    """Install OSGi bundles into a running Sling instance."""
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug


def _build_settings(overrides: Dict[str, Any]) -> Settings:
    return Settings(**{key: value for key, value in overrides.items() if value not in (None, ())})


@cli.command("install-file")
@click.option("--file", "-f", "bundle_file", envvar="SLING_FILE", type=click.Path(dir_okay=False),
              help="Path of the bundle file to install.")
@click.option("--group-id", envvar="SLING_GROUPID", help="groupId of the artifact to install.")
@click.option("--artifact-id", envvar="SLING_ARTIFACTID", help="artifactId of the artifact to install.")
@click.option("--version", "version_", envvar="SLING_VERSION", help="Version of the artifact to install.")
@click.option("--packaging", envvar="SLING_PACKAGING", default=DEFAULT_PACKAGING, show_default=True,
              help="Packaging of the artifact to install.")
@click.option("--classifier", envvar="SLING_CLASSIFIER", help="Classifier of the artifact to install.")
@click.option("--artifact", "-a", envvar="SLING_ARTIFACT",
              help="groupId:artifactId:version[:packaging[:classifier]]")
@click.option("--sling-url", help="Felix web console URL of the target instance.")
@click.option("--user", "sling_user", help="User for the target instance.")
@click.option("--password", "sling_password", help="Password for the target instance.")
@click.option("--repository", "-r", "repositories", multiple=True,
              help="Remote repository as url or id::url (repeatable).")
@click.option("--local-repository", type=click.Path(file_okay=False), help="Local repository directory.")
@click.option("--offline", is_flag=True, help="Resolve from the local repository only.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def install_file(
    ctx: click.Context,
    bundle_file: Optional[str],
    group_id: Optional[str],
    artifact_id: Optional[str],
    version_: Optional[str],
    packaging: str,
    classifier: Optional[str],
    artifact: Optional[str],
    sling_url: Optional[str],
    sling_user: Optional[str],
    sling_password: Optional[str],
    repositories: Tuple[str, ...],
    local_repository: Optional[str],
    offline: bool,
    as_json: bool,
) -> None:
    """Install a bundle from a file or from Maven coordinates."""
    settings = _build_settings(
        {
            "sling_url": sling_url,
            "sling_user": sling_user,
            "sling_password": sling_password,
            "remote_repositories": list(repositories) or None,
            "local_repository": local_repository,
            "offline": offline or None,
        }
    )
    configure_logging(logging.DEBUG if ctx.obj.get("debug") else settings.log_level)

    container_factory = ctx.obj.get("container_factory", ServiceContainer)
    services = container_factory(settings)
    params = InstallFileParams(
        file=bundle_file,
        groupid=group_id,
        artifactid=artifact_id,
        version=version_,
        packaging=packaging,
        classifier=classifier,
        artifact=artifact,
    )
    try:
        result = services.install_file_service.execute(params)
    except BundleSupportError as exc:
        message = str(exc)
        if exc.__cause__ is not None:
            message = f"{message} {exc.__cause__}"
        raise click.ClickException(message) from exc

    if as_json:
        click.echo(json.dumps(result.as_dict(), indent=2))
        return
    click.secho(f"✅ {result.message}", fg="green")
    click.echo(f"   {result.bundle_file} → {settings.sling_url}")


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
