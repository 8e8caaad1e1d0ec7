import hashlib
import time
from dataclasses import replace

import httpx
import pytest

from bundlesupport.modules.bundleinstall.domain import (
    ArtifactCoordinates,
    ArtifactRequest,
    ArtifactResolutionError,
    RemoteRepository,
    RepositoryPolicy,
)
from bundlesupport.modules.bundleinstall.fileget import MavenRepositorySystem

CONTENT = b"bundle-bytes"
SHA1 = hashlib.sha1(CONTENT).hexdigest()


def make_repo(url="https://repo.example.org/maven2", repo_id="central", **policy) -> RemoteRepository:
    return RemoteRepository(id=repo_id, url=url, policy=RepositoryPolicy(**policy))


def make_system(build_settings, handler) -> MavenRepositorySystem:
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return MavenRepositorySystem(build_settings(), client=client)


def test_download_into_local_repository(build_settings):
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request.url.path)
        if request.url.path.endswith(".sha1"):
            return httpx.Response(200, text=f"{SHA1}  demo-1.0.jar")
        return httpx.Response(200, content=CONTENT)

    system = make_system(build_settings, handler)
    session = system.new_session()
    coords = ArtifactCoordinates("org.apache.sling", "demo", "1.0")

    result = system.resolve_artifact(session, ArtifactRequest(coords, [make_repo()]))

    assert result.file.read_bytes() == CONTENT
    assert result.file == session.local_repository.joinpath(*coords.path_segments).resolve()
    assert result.repository.id == "central"
    assert requests[0] == "/maven2/org/apache/sling/demo/1.0/demo-1.0.jar"
    assert not list(result.file.parent.glob("*.part"))


def test_cached_release_skips_network(build_settings):
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    system = make_system(build_settings, handler)
    session = system.new_session()
    coords = ArtifactCoordinates("g", "a", "1.0")
    target = session.local_repository.joinpath(*coords.path_segments)
    target.parent.mkdir(parents=True)
    target.write_bytes(b"cached")

    result = system.resolve_artifact(session, ArtifactRequest(coords, [make_repo()]))

    assert result.file.read_bytes() == b"cached"


def test_falls_through_to_next_repository(build_settings):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "first.example.org":
            return httpx.Response(404)
        if request.url.path.endswith(".sha1"):
            return httpx.Response(200, text=SHA1)
        return httpx.Response(200, content=CONTENT)

    system = make_system(build_settings, handler)
    repos = [
        make_repo("https://first.example.org/repo", "first"),
        make_repo("https://second.example.org/repo", "second"),
    ]

    result = system.resolve_artifact(system.new_session(), ArtifactRequest(ArtifactCoordinates("g", "a", "1.0"), repos))

    assert result.repository.id == "second"


def test_disabled_repository_is_not_contacted(build_settings):
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("disabled repository contacted")

    system = make_system(build_settings, handler)

    with pytest.raises(ArtifactResolutionError):
        system.resolve_artifact(
            system.new_session(),
            ArtifactRequest(ArtifactCoordinates("g", "a", "1.0"), [make_repo(enabled=False)]),
        )


def test_not_found_is_cached_until_policy_allows_retry(build_settings):
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.url.path)
        return httpx.Response(404)

    system = make_system(build_settings, handler)
    session = system.new_session()
    coords = ArtifactCoordinates("g", "a", "1.0")

    with pytest.raises(ArtifactResolutionError):
        system.resolve_artifact(session, ArtifactRequest(coords, [make_repo(update_policy="daily")]))
    assert len(calls) == 1

    with pytest.raises(ArtifactResolutionError) as excinfo:
        system.resolve_artifact(session, ArtifactRequest(coords, [make_repo(update_policy="daily")]))
    assert len(calls) == 1
    assert "will not be reattempted" in str(excinfo.value)

    with pytest.raises(ArtifactResolutionError):
        system.resolve_artifact(session, ArtifactRequest(coords, [make_repo(update_policy="always")]))
    assert len(calls) == 2


def test_success_clears_not_found_marker(build_settings):
    state = {"found": False}

    def handler(request: httpx.Request) -> httpx.Response:
        if not state["found"]:
            return httpx.Response(404)
        if request.url.path.endswith(".sha1"):
            return httpx.Response(200, text=SHA1)
        return httpx.Response(200, content=CONTENT)

    system = make_system(build_settings, handler)
    session = system.new_session()
    coords = ArtifactCoordinates("g", "a", "1.0")
    repo = make_repo(update_policy="always")

    with pytest.raises(ArtifactResolutionError):
        system.resolve_artifact(session, ArtifactRequest(coords, [repo]))
    marker = session.local_repository.joinpath(*coords.path_segments)
    marker = marker.with_name(marker.name + ".lastUpdated")
    content = marker.read_text(encoding="iso-8859-1")
    assert "https\\://repo.example.org/maven2/.lastUpdated=" in content
    assert "https\\://repo.example.org/maven2/.error=\n" in content

    state["found"] = True
    system.resolve_artifact(session, ArtifactRequest(coords, [repo]))
    assert not marker.exists()


MAVEN_MARKER = """#NOTE: This is a Maven Resolver internal implementation file, its format can be changed without prior notice.
#Sat Oct 17 10:00:00 UTC 2026
https\\://other.example.org/repo/.lastUpdated=1700000000000
https\\://other.example.org/repo/.error=
"""


def marker_for(session, coords):
    target = session.local_repository.joinpath(*coords.path_segments)
    target.parent.mkdir(parents=True, exist_ok=True)
    return target.with_name(target.name + ".lastUpdated")


def test_marker_keeps_entries_of_other_repositories(build_settings):
    state = {"found": False}

    def handler(request: httpx.Request) -> httpx.Response:
        if not state["found"]:
            return httpx.Response(404)
        if request.url.path.endswith(".sha1"):
            return httpx.Response(200, text=SHA1)
        return httpx.Response(200, content=CONTENT)

    system = make_system(build_settings, handler)
    session = system.new_session()
    coords = ArtifactCoordinates("g", "a", "1.0")
    marker = marker_for(session, coords)
    marker.write_text(MAVEN_MARKER, encoding="iso-8859-1")
    repo = make_repo(update_policy="always")

    with pytest.raises(ArtifactResolutionError):
        system.resolve_artifact(session, ArtifactRequest(coords, [repo]))
    content = marker.read_text(encoding="iso-8859-1")
    assert content.startswith(MAVEN_MARKER)
    assert "https\\://repo.example.org/maven2/.lastUpdated=" in content

    state["found"] = True
    system.resolve_artifact(session, ArtifactRequest(coords, [repo]))
    assert marker.read_text(encoding="iso-8859-1") == MAVEN_MARKER


def test_marker_written_by_maven_is_honoured(build_settings):
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.url.path)
        return httpx.Response(404)

    system = make_system(build_settings, handler)
    session = system.new_session()
    coords = ArtifactCoordinates("g", "a", "1.0")
    marker = marker_for(session, coords)
    now = int(time.time() * 1000)
    marker.write_text(
        f"https\\://repo.example.org/maven2/.lastUpdated={now}\nhttps\\://repo.example.org/maven2/.error=\n",
        encoding="iso-8859-1",
    )

    with pytest.raises(ArtifactResolutionError) as excinfo:
        system.resolve_artifact(session, ArtifactRequest(coords, [make_repo(update_policy="daily")]))
    assert calls == []
    assert "will not be reattempted" in str(excinfo.value)

    # transfer errors are not cached
    marker.write_text(
        f"https\\://repo.example.org/maven2/.lastUpdated={now}\n"
        "https\\://repo.example.org/maven2/.error=Connection reset\n",
        encoding="iso-8859-1",
    )
    with pytest.raises(ArtifactResolutionError):
        system.resolve_artifact(session, ArtifactRequest(coords, [make_repo(update_policy="daily")]))
    assert len(calls) == 1


def test_concurrent_downloads_of_same_artifact(build_settings):
    nested = []

    def body():
        yield CONTENT[:6]
        if not nested:
            nested.append("started")
            # a second resolution of the same artifact while this transfer is in flight
            nested.append(system.resolve_artifact(session, ArtifactRequest(coords, [make_repo(update_policy="always")])))
        yield CONTENT[6:]

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith(".sha1"):
            return httpx.Response(200, text=SHA1)
        return httpx.Response(200, content=body())

    system = make_system(build_settings, handler)
    session = system.new_session()
    coords = ArtifactCoordinates("g", "a", "1.0")

    result = system.resolve_artifact(session, ArtifactRequest(coords, [make_repo()]))

    inner = nested[1]
    assert inner.file == result.file
    assert result.file.read_bytes() == CONTENT
    assert not list(result.file.parent.glob("*.part"))


def test_local_repository_failure_is_a_resolution_error(tmp_path, build_settings):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith(".sha1"):
            return httpx.Response(200, text=SHA1)
        return httpx.Response(200, content=CONTENT)

    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")
    system = MavenRepositorySystem(
        build_settings(local_repository=str(blocker / "repository")),
        client=httpx.Client(transport=httpx.MockTransport(handler)),
    )

    with pytest.raises(ArtifactResolutionError) as excinfo:
        system.resolve_artifact(
            system.new_session(),
            ArtifactRequest(ArtifactCoordinates("g", "a", "1.0"), [make_repo()]),
        )

    assert "local repository" in str(excinfo.value)
    assert isinstance(excinfo.value.__cause__, OSError)


def test_checksum_fail_policy_rejects_mismatch(build_settings):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith(".sha1"):
            return httpx.Response(200, text="0" * 40)
        return httpx.Response(200, content=CONTENT)

    system = make_system(build_settings, handler)
    session = system.new_session()
    coords = ArtifactCoordinates("g", "a", "1.0")

    with pytest.raises(ArtifactResolutionError) as excinfo:
        system.resolve_artifact(session, ArtifactRequest(coords, [make_repo(checksum_policy="fail")]))

    assert "Checksum validation failed" in str(excinfo.value)
    assert not session.local_repository.joinpath(*coords.path_segments).exists()


def test_checksum_warn_policy_accepts_mismatch(build_settings):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith(".sha1"):
            return httpx.Response(404)
        return httpx.Response(200, content=CONTENT)

    system = make_system(build_settings, handler)

    result = system.resolve_artifact(
        system.new_session(),
        ArtifactRequest(ArtifactCoordinates("g", "a", "1.0"), [make_repo(checksum_policy="warn")]),
    )

    assert result.file.read_bytes() == CONTENT


def test_snapshot_uses_timestamped_file_name(build_settings):
    metadata = """<?xml version="1.0" encoding="UTF-8"?>
<metadata>
  <versioning>
    <snapshot><timestamp>20240101.120000</timestamp><buildNumber>3</buildNumber></snapshot>
    <snapshotVersions>
      <snapshotVersion><extension>pom</extension><value>1.0-20240101.120000-3</value></snapshotVersion>
      <snapshotVersion><extension>jar</extension><value>1.0-20240101.120000-3</value></snapshotVersion>
    </snapshotVersions>
  </versioning>
</metadata>"""
    paths = []

    def handler(request: httpx.Request) -> httpx.Response:
        paths.append(request.url.path)
        if request.url.path.endswith("maven-metadata.xml"):
            return httpx.Response(200, text=metadata)
        if request.url.path.endswith(".sha1"):
            return httpx.Response(200, text=SHA1)
        return httpx.Response(200, content=CONTENT)

    system = make_system(build_settings, handler)
    coords = ArtifactCoordinates("g", "a", "1.0-SNAPSHOT")

    result = system.resolve_artifact(system.new_session(), ArtifactRequest(coords, [make_repo()]))

    assert "/maven2/g/a/1.0-SNAPSHOT/a-1.0-20240101.120000-3.jar" in paths
    assert result.file.name == "a-1.0-SNAPSHOT.jar"


def test_cached_snapshot_refreshed_only_when_due(build_settings):
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.url.path)
        if request.url.path.endswith(".sha1"):
            return httpx.Response(200, text=SHA1)
        if request.url.path.endswith("maven-metadata.xml"):
            return httpx.Response(404)
        return httpx.Response(200, content=CONTENT)

    system = make_system(build_settings, handler)
    session = system.new_session()
    coords = ArtifactCoordinates("g", "a", "1.0-SNAPSHOT")
    target = session.local_repository.joinpath(*coords.path_segments)
    target.parent.mkdir(parents=True)
    target.write_bytes(b"old")

    result = system.resolve_artifact(session, ArtifactRequest(coords, [make_repo(update_policy="daily")]))
    assert result.file.read_bytes() == b"old"
    assert calls == []

    result = system.resolve_artifact(session, ArtifactRequest(coords, [make_repo(update_policy="always")]))
    assert result.file.read_bytes() == CONTENT


def test_offline_session_requires_local_copy(build_settings):
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("offline session must not hit the network")

    system = make_system(build_settings, handler)
    session = replace(system.new_session(), offline=True)

    with pytest.raises(ArtifactResolutionError) as excinfo:
        system.resolve_artifact(session, ArtifactRequest(ArtifactCoordinates("g", "a", "1.0"), [make_repo()]))
    assert "offline" in str(excinfo.value)


def test_transport_error_is_reported_per_repository(build_settings):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    system = make_system(build_settings, handler)

    with pytest.raises(ArtifactResolutionError) as excinfo:
        system.resolve_artifact(
            system.new_session(),
            ArtifactRequest(ArtifactCoordinates("g", "a", "1.0"), [make_repo()]),
        )

    assert "central" in excinfo.value.errors
    assert "connection refused" in str(excinfo.value)


def test_remote_repositories_from_settings(build_settings):
    settings = build_settings(
        remote_repositories=["central::https://repo.example.org/maven2/", "https://mirror.example.org/repo"],
        repository_update_policy="never",
        repository_checksum_policy="fail",
        repository_username="deployer",
        repository_password="secret",
    )
    system = MavenRepositorySystem(settings, client=httpx.Client())

    repos = system.remote_repositories()

    assert [repo.id for repo in repos] == ["central", "remote-1"]
    assert repos[0].url == "https://repo.example.org/maven2"
    assert repos[1].policy == RepositoryPolicy(True, "never", "fail")
    assert repos[0].auth == ("deployer", "secret")
