from pathlib import Path

import pytest

from depfixer.brokentarget import BrokenTarget, FailureKind, extract, extract_from_file
from depfixer.errors import LabelResolutionError

JAVA_FAILURE = (
    "ERROR: /ws/a/b/BUILD.bazel:12:13: Couldn't build file a/b/d_java.jar: "
    "Building a/b/d_java.jar (1 source file) failed: (Exit 1)"
)
SCALA_FAILURE = (
    "ERROR: /ws/a/b/BUILD.bazel:10:1: Couldn't build file a/b/c.jar: "
    "scala //a/b:c (compile errors) failed (Exit 1)"
)
PROTO_FAILURE = (
    "ERROR: /ws/p/BUILD.bazel:3:1: Couldn't build file p/q.srcjar: "
    "creating scalapb files //p:q_srcjar failed (Exit 1)"
)


@pytest.fixture
def roots(tmp_path: Path) -> tuple[Path, Path]:
    workspace = tmp_path / "workspace"
    external = tmp_path / "external"
    (workspace / "a" / "b").mkdir(parents=True)
    (external / "foo" / "bar").mkdir(parents=True)
    return workspace, external


def _log(*blocks: str) -> str:
    return "\n".join(blocks) + "\n"


def test_no_signature_yields_empty_list(roots: tuple[Path, Path]) -> None:
    workspace, external = roots
    assert extract("", workspace, external) == []
    assert extract("INFO: Build completed successfully\n", workspace, external) == []


def test_targets_sorted_and_segments_partition_log(roots: tuple[Path, Path]) -> None:
    workspace, external = roots
    log = _log(
        "INFO: Analyzed 3 targets",
        JAVA_FAILURE,
        "a/b/D.java:3: error: cannot find symbol",
        SCALA_FAILURE,
        "a/b/C.scala:7: error: not found: type Foo",
        PROTO_FAILURE,
        "p/q.proto: import not found",
    )

    targets = extract(log, workspace, external)

    assert [t.target_label for t in targets] == ["//a/b:d", "//a/b:c", "//p:q"]
    assert [t.failure_kind for t in targets] == [
        FailureKind.JAVA,
        FailureKind.SCALA,
        FailureKind.PROTO,
    ]
    starts = [t.segment_start for t in targets]
    assert starts == sorted(starts)
    for current, following in zip(targets, targets[1:]):
        assert current.segment_end == following.error_start
    assert targets[-1].segment_end == len(log)
    assert targets[0].error_start == log.index(JAVA_FAILURE)


def test_segment_holds_only_the_targets_error_text(roots: tuple[Path, Path]) -> None:
    workspace, external = roots
    log = _log(JAVA_FAILURE, "java error text", SCALA_FAILURE, "scala error text")

    java, scala = extract(log, workspace, external)

    assert "java error text" in java.segment
    assert "scala error text" not in java.segment
    assert "scala error text" in scala.segment
    assert scala.segment.endswith("scala error text\n")


def test_scala_identifier_keeps_first_word_only(roots: tuple[Path, Path]) -> None:
    workspace, external = roots
    (target,) = extract(_log(SCALA_FAILURE), workspace, external)
    assert target.target_label == "//a/b:c"
    assert target.is_external is False
    assert target.origin_repo == "//"


def test_external_java_target(roots: tuple[Path, Path]) -> None:
    workspace, external = roots
    log = _log(
        "ERROR: /ext/foo/bar/BUILD:1:1: Couldn't build file external/foo/bar/baz_java.jar: "
        "Building external/foo/bar/baz_java.jar failed: (Exit 1)"
    )
    (target,) = extract(log, workspace, external)
    assert target.target_label == "@foo//bar:baz"
    assert target.is_external is True
    assert target.origin_repo == "foo"


def test_header_jar_failure_matches_java_signature(roots: tuple[Path, Path]) -> None:
    workspace, external = roots
    log = _log(
        "ERROR: /ws/a/b/BUILD:4:1: Couldn't build file a/b/e_java-hjar.jar: "
        "Compiling Java headers a/b/e_java-hjar.jar failed: (Exit 1)"
    )
    (target,) = extract(log, workspace, external)
    assert target.target_label == "//a/b:e"
    assert target.failure_kind is FailureKind.JAVA


def test_proto_labels_are_not_resolved(roots: tuple[Path, Path]) -> None:
    workspace, external = roots
    log = _log(
        "ERROR: /ws/p/BUILD:3:1: Couldn't build file p/q.srcjar: "
        "creating scalapb files @protos//p:q_generator_srcjar failed (Exit 1)"
    )
    (target,) = extract(log, workspace, external)
    # Proto failures skip resolution entirely, including the generator rule.
    assert target.target_label == "@protos//p:q_generator"
    assert target.is_external is True
    assert target.origin_repo == "protos"


def test_repeated_failures_are_not_deduplicated(roots: tuple[Path, Path]) -> None:
    workspace, external = roots
    log = _log(JAVA_FAILURE, "first", JAVA_FAILURE, "second")
    targets = extract(log, workspace, external)
    assert [t.target_label for t in targets] == ["//a/b:d", "//a/b:d"]
    assert targets[0].segment_end == targets[1].error_start


def test_unresolvable_target_aborts_extraction(roots: tuple[Path, Path]) -> None:
    workspace, external = roots
    log = _log(
        "ERROR: /ws/z/BUILD:1:1: Couldn't build file z/y_java.jar: Building z/y_java.jar failed"
    )
    with pytest.raises(LabelResolutionError):
        extract(log, workspace, external)


def test_extract_from_file(tmp_path: Path, roots: tuple[Path, Path]) -> None:
    workspace, external = roots
    log_file = tmp_path / "build.log"
    log_file.write_text(_log(JAVA_FAILURE, "details"), encoding="utf-8")

    targets = extract_from_file(log_file, workspace, external)

    assert len(targets) == 1
    assert isinstance(targets[0], BrokenTarget)
    assert targets[0].as_dict()["target_label"] == "//a/b:d"
    assert targets[0].as_dict()["failure_kind"] == "java"
