import pytest

from bundlesupport.settings import Settings


@pytest.fixture
def build_settings(tmp_path):
    def _build(**overrides) -> Settings:
        defaults = {
            "sling_url": "http://localhost:8080/system/console",
            "local_repository": str(tmp_path / "repository"),
            "remote_repositories": ["central::https://repo.example.org/maven2"],
        }
        defaults.update(overrides)
        return Settings(_env_file=None, **defaults)

    return _build
