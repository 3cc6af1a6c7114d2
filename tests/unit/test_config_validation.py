import pytest

from depfixer.config import get_settings, validate_settings
from depfixer.errors import ConfigError


def test_settings_read_from_environment(tmp_path) -> None:
    settings = get_settings()
    assert settings.persistence_root == str(tmp_path / "persist")
    assert settings.workspace_name == "ws"
    assert settings.index_version == "1.0.2"
    assert settings.commit_message == "commit by depfixer"
    validate_settings(settings)


def test_invalid_worker_count_rejected(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DEPFIXER_INDEX_WORKERS", "0")
    get_settings.cache_clear()
    with pytest.raises(ConfigError) as exc_info:
        validate_settings(get_settings())
    assert "DEPFIXER_INDEX_WORKERS" in str(exc_info.value)


def test_invalid_gc_threshold_rejected(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DEPFIXER_GC_THRESHOLD_SECONDS", "0")
    get_settings.cache_clear()
    with pytest.raises(ConfigError):
        validate_settings(get_settings())
