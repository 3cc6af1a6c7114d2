"""Tests for error hierarchy."""

from depfixer.errors import (
    ArchiveError,
    CacheFormatError,
    ConfigError,
    DepfixerError,
    LabelResolutionError,
    VcsError,
)


def test_hierarchy() -> None:
    assert issubclass(LabelResolutionError, DepfixerError)
    assert issubclass(ArchiveError, DepfixerError)
    assert issubclass(CacheFormatError, DepfixerError)
    assert issubclass(VcsError, DepfixerError)
    assert issubclass(ConfigError, DepfixerError)


def test_context_attributes() -> None:
    err = LabelResolutionError("no package", identifier="a/b/c", path="/ws")
    assert str(err) == "no package"
    assert err.identifier == "a/b/c"
    assert err.path == "/ws"

    vcs = VcsError("failed", command=["git", "commit"], exit_code=1, stderr="nothing to commit")
    assert vcs.command == ["git", "commit"]
    assert vcs.exit_code == 1
    assert vcs.stderr == "nothing to commit"
    assert DepfixerError("plain").path is None


def test_catch_as_depfixer_error() -> None:
    try:
        raise ArchiveError("bad jar", path="/out/x.jar")
    except DepfixerError as exc:
        assert exc.path == "/out/x.jar"
