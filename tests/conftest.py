"""
Shared pytest fixtures for the grainmirror test suite.

Every test runs with the user config directory redirected into tmp_path
and GRAINMIRROR_* variables cleared, so a developer's own settings never
leak into results.

Usage in tests:
    def test_something(mirror_factory):
        source, mirrors = mirror_factory.add_mirrored_source("a.md")
        outcome = mirror_factory.sync_engine.sync(source)

    def test_with_data(mirror_env):
        # mirror_env comes with two synced sources
        report = mirror_env.verify_engine.verify_all()
"""

import pytest

from grainmirror.config import ConfigManager
from tests.factories import MirrorTestFactory


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path, monkeypatch):
    """Point user config at tmp_path and drop GRAINMIRROR_* overrides."""
    for var in ("GRAINMIRROR_REGISTRY", "GRAINMIRROR_HASH", "GRAINMIRROR_LOG_LEVEL",
                "GRAINMIRROR_SYMBOLS", "GRAINMIRROR_PROJECT_PATH"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setattr(ConfigManager, "USER_CONFIG_DIR", tmp_path / "home" / ".grainmirror")


@pytest.fixture
def mirror_factory(tmp_path):
    """Empty environment: registry file not created yet."""
    return MirrorTestFactory(tmp_path)


@pytest.fixture
def mirror_env(tmp_path):
    """
    Environment with two synced sources.

    - notes.md -> 2 mirrors
    - todo.md  -> 1 mirror
    """
    factory = MirrorTestFactory(tmp_path)
    notes, _ = factory.add_mirrored_source("notes.md", b"# notes\n", mirror_count=2)
    todo, _ = factory.add_mirrored_source("todo.md", b"- [ ] write tests\n", mirror_count=1)
    factory.sync_engine.sync(notes)
    factory.sync_engine.sync(todo)
    return factory


@pytest.fixture
def mock_cli(mirror_factory):
    """Mock CLI backed by the factory's real registry and engines."""
    return mirror_factory.create_cli_mock()
