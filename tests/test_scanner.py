"""Tests for size aggregation, bounded-depth listing and progress reporting."""

from __future__ import annotations

import os

import pytest

from folderlens import scanner
from folderlens.errors import InvalidPathError
from folderlens.scanner import ScanSession, directory_size, scan_directory, scan_root


def test_flat_directory_size_is_sum_of_files(make_tree):
    root = make_tree({"a": 10, "b": 20, "c": 35})
    assert directory_size(root) == 65


def test_nested_size_and_expansion(make_tree, by_name):
    root = make_tree({"B": {"file": 100}})

    top = by_name(scan_directory(root))
    assert top["B"].is_dir
    assert top["B"].size == 100
    assert top["B"].has_contents is True
    assert top["B"].contents is None

    inner = by_name(scan_directory(top["B"].path))
    assert inner["file"].size == 100
    assert not inner["file"].is_dir


def test_root_scan_lists_immediate_children_only(make_tree):
    root = make_tree({"A": {"B": {"deep.bin": 7}}, "top.txt": 3})
    entries = scan_directory(root)

    assert sorted(e.name for e in entries) == ["A", "top.txt"]
    for e in entries:
        assert e.contents is None
    paths = {e.path for e in entries}
    assert str(root / "A" / "B") not in paths
    assert str(root / "A" / "B" / "deep.bin") not in paths


def test_empty_directory_is_a_leaf(make_tree, by_name):
    root = make_tree({"empty": {}, "full": {"f": 1}})
    top = by_name(scan_directory(root))

    assert top["empty"].has_contents is False
    assert top["empty"].size == 0
    assert not top["empty"].is_inaccessible
    assert top["full"].has_contents is True


def test_entry_paths_are_absolute(make_tree):
    root = make_tree({"x": 1})
    (entry,) = scan_directory(os.path.relpath(root))
    assert os.path.isabs(entry.path)
    assert entry.path == str(root / "x")


def test_progress_counts_are_monotonic_and_end_at_totals(make_tree):
    layout = {
        "d1": {f"f{i}": 1 for i in range(30)},
        "d2": {"sub": {f"g{i}": 2 for i in range(70)}, "h": 5},
        "loose": 9,
    }
    root = make_tree(layout)
    events = []
    res = scan_root(root, progress=events.append)

    assert events
    files = [e.files_count for e in events]
    dirs = [e.dirs_count for e in events]
    assert files == sorted(files)
    assert dirs == sorted(dirs)
    # 30 + 70 + 1 + 1 files; d1, d2, d2/sub folders
    assert (files[-1], dirs[-1]) == (102, 3)
    assert (res.files, res.dirs) == (102, 3)


def test_one_event_per_directory_visited(make_tree):
    root = make_tree({"a": {}, "b": {"c": {}}})
    events = []
    scan_directory(root, progress=events.append)
    assert [e.dirs_count for e in events] == [1, 2, 3]


def test_file_events_are_sampled(make_tree):
    root = make_tree({f"f{i:03}": 1 for i in range(120)})
    events = []
    scan_directory(root, progress=events.append)

    # every 50th file, plus one closing event with the final totals
    assert [e.files_count for e in events] == [50, 100, 120]


def test_custom_sampling_threshold(make_tree):
    root = make_tree({f"f{i}": 1 for i in range(10)})
    events = []
    scan_directory(root, progress=events.append, progress_every=5)
    assert [e.files_count for e in events] == [5, 10]


def test_expansion_without_sink_reports_nothing(make_tree):
    root = make_tree({"a": {"b": 1}})
    session = ScanSession()
    scan_directory(root, session=session)
    assert session.progress is None
    assert (session.files, session.dirs) == (1, 1)


def test_unreadable_file_is_isolated(make_tree, by_name, monkeypatch):
    root = make_tree({"d": {"ok1": 10, "ok2": 20, "secret": 500}, "hidden": 4, "plain": 6})
    real_stat = scanner._entry_stat

    def flaky_stat(entry, follow_symlinks):
        if entry.name in ("secret", "hidden"):
            raise PermissionError(13, "Permission denied", entry.path)
        return real_stat(entry, follow_symlinks)

    monkeypatch.setattr(scanner, "_entry_stat", flaky_stat)
    top = by_name(scan_directory(root))

    assert top["d"].size == 30
    assert not top["d"].is_inaccessible
    assert top["hidden"].is_inaccessible
    assert top["hidden"].size == 0
    assert "Permission denied" in top["hidden"].error
    assert top["plain"].size == 6


def test_unstattable_directory_keeps_its_kind(make_tree, by_name, monkeypatch):
    root = make_tree({"sub": {"x": 5}, "f": 1})
    real_stat = scanner._entry_stat

    def flaky_stat(entry, follow_symlinks):
        if entry.name in ("sub", "f"):
            raise PermissionError(13, "Permission denied", entry.path)
        return real_stat(entry, follow_symlinks)

    monkeypatch.setattr(scanner, "_entry_stat", flaky_stat)
    top = by_name(scan_directory(root))

    assert top["sub"].is_dir
    assert top["sub"].is_inaccessible
    assert top["sub"].size == 0
    assert top["sub"].has_contents is False
    assert not top["f"].is_dir
    assert top["f"].is_inaccessible


def test_unlistable_directories_degrade_to_zero(make_tree, by_name, monkeypatch):
    root = make_tree({"locked": {"x": 100}, "outer": {"inner_locked": {"y": 50}, "z": 7}})
    real_open = scanner._open_dir

    def guarded_open(path):
        if os.path.basename(path) in ("locked", "inner_locked"):
            raise PermissionError(13, "Permission denied", path)
        return real_open(path)

    monkeypatch.setattr(scanner, "_open_dir", guarded_open)
    top = by_name(scan_directory(root))

    assert top["locked"].is_inaccessible
    assert top["locked"].size == 0
    assert top["locked"].has_contents is False
    assert top["outer"].size == 7
    assert not top["outer"].is_inaccessible

    assert directory_size(root / "locked") == 0


def test_directory_size_sends_closing_event(make_tree):
    root = make_tree({"a": 1, "b": 2, "c": {"d": 3}})
    events = []
    session = ScanSession(progress=events.append)

    assert directory_size(root, session=session) == 6
    # root and c are both descended into
    assert (events[-1].files_count, events[-1].dirs_count) == (3, 2)


def test_directory_size_of_unlistable_root_still_closes(make_tree, monkeypatch):
    root = make_tree({"a": 1})

    def denied(path):
        raise PermissionError(13, "Permission denied", path)

    monkeypatch.setattr(scanner, "_open_dir", denied)
    events = []
    assert directory_size(root, session=ScanSession(progress=events.append)) == 0
    assert events[-1].dirs_count == 1


@pytest.mark.parametrize("bad", [None, 42, "", "   "])
def test_invalid_arguments_rejected(bad):
    with pytest.raises(InvalidPathError):
        scan_directory(bad)


def test_missing_directory_rejected(tmp_path):
    with pytest.raises(InvalidPathError):
        scan_directory(tmp_path / "nope")


def test_file_path_rejected(make_tree):
    root = make_tree({"f": 1})
    with pytest.raises(InvalidPathError):
        scan_directory(root / "f")


def test_parallel_workers_match_sequential(make_tree, by_name):
    layout = {f"d{i}": {f"f{j}": i + j for j in range(25)} for i in range(6)}
    layout["sub"] = {"deeper": {"k": 11}}
    root = make_tree(layout)

    seq = by_name(scan_directory(root))
    events = []
    par = by_name(scan_directory(root, workers=4, progress=events.append))

    assert {n: e.size for n, e in seq.items()} == {n: e.size for n, e in par.items()}
    files = [e.files_count for e in events]
    dirs = [e.dirs_count for e in events]
    assert files == sorted(files)
    assert dirs == sorted(dirs)
    assert (files[-1], dirs[-1]) == (151, 8)


def test_parallel_workers_keep_listing_order(make_tree):
    root = make_tree({f"d{i}": {"f": i} for i in range(8)})
    seq = [e.name for e in scan_directory(root)]
    par = [e.name for e in scan_directory(root, workers=3)]
    assert seq == par


def test_symlinked_directory_is_not_traversed(make_tree, by_name, symlinks_supported):
    if not symlinks_supported:
        pytest.skip("symlinks not available")
    root = make_tree({"real": {"big": 1000}})
    os.symlink(root / "real", root / "link", target_is_directory=True)

    top = by_name(scan_directory(root))
    assert not top["link"].is_dir
    assert top["link"].size < 1000
    assert top["real"].size == 1000


def test_following_symlinks_survives_cycles(make_tree, by_name, symlinks_supported):
    if not symlinks_supported:
        pytest.skip("symlinks not available")
    root = make_tree({"a": {"f": 10}})
    os.symlink(root, root / "a" / "back", target_is_directory=True)

    top = by_name(scan_directory(root, follow_symlinks=True))
    assert top["a"].size == 10


def test_cancelled_scan_is_flagged(make_tree):
    root = make_tree({f"d{i}": {"f": 1} for i in range(5)})
    res = scan_root(root, cancel_flag=lambda: True)
    assert res.cancelled
    assert res.contents == []


def test_scan_root_result(make_tree):
    root = make_tree({"a": {"b": 4}, "c": 6})
    res = scan_root(root, session_id=77)

    assert res.session_id == 77
    assert res.root_path == str(root)
    assert not res.cancelled
    tree = res.as_tree()
    assert tree.size == 10
    assert tree.is_expanded
    assert tree.name == "root"


def test_session_ids_increase():
    a = ScanSession()
    b = ScanSession()
    assert b.session_id > a.session_id
