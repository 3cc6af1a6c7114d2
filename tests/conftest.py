import zipfile
from collections.abc import Callable, Iterable
from pathlib import Path

import pytest

from depfixer.config import get_settings


@pytest.fixture(autouse=True)
def test_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("APP_ENV", "test")
    monkeypatch.setenv("DEPFIXER_PERSISTENCE_ROOT", str(tmp_path / "persist"))
    monkeypatch.setenv("DEPFIXER_WORKSPACE_ROOT", str(tmp_path))
    monkeypatch.setenv("DEPFIXER_WORKSPACE_NAME", "ws")
    monkeypatch.setenv("DEPFIXER_GC_THRESHOLD_SECONDS", "600")
    monkeypatch.setenv("DEPFIXER_INDEX_WORKERS", "1")
    monkeypatch.delenv("DEPFIXER_INDEX_VERSION", raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def make_jar() -> Callable[[Path, Iterable[str]], Path]:
    """Write a jar at *path* holding one empty entry per name (``com/acme/Foo.class``)."""

    def _make(path: Path, entries: Iterable[str]) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        with zipfile.ZipFile(path, "w") as archive:
            archive.writestr("META-INF/MANIFEST.MF", "Manifest-Version: 1.0\n")
            for name in entries:
                archive.writestr(name, b"\xca\xfe\xba\xbe" + name.encode("utf-8"))
        return path

    return _make


@pytest.fixture
def make_bad_name_jar() -> Callable[[Path], Path]:
    """Write a jar whose entry name is flagged UTF-8 but holds invalid bytes."""

    def _make(path: Path) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        with zipfile.ZipFile(path, "w") as archive:
            archive.writestr("pkg/Aÿþ.class", b"\xca\xfe\xba\xbe")
        # Same length, so header offsets stay valid.
        data = path.read_bytes().replace("ÿþ".encode("utf-8"), b"\xff\xfe\xff\xfe")
        path.write_bytes(data)
        return path

    return _make
