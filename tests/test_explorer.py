from __future__ import annotations

from pathlib import Path

import pytest

from dmi_viewer.dmi_engine.explorer import DmiCatalog, iter_dmi_files, read_state_names
from dmi_viewer.errors import DmiDecodeError
from dmi_viewer.path_utils import path_key


@pytest.fixture
def dmi_tree(tmp_path, write_dmi, state_spec) -> Path:
    root = tmp_path / "icons"
    write_dmi("icons/b.dmi", [state_spec("b_idle")])
    write_dmi("icons/A.DMI", [state_spec("a_idle")])
    write_dmi("icons/sub/c.dmi", [state_spec("c_idle")])
    write_dmi("icons/sub/deep/d.dmi", [state_spec("d_idle")])
    (root / "notes.txt").write_text("not an icon", encoding="utf-8")
    return root


def _names(paths) -> list[str]:
    return [p.name for p in paths]


def test_iter_dmi_files_sorted_and_recursive(dmi_tree: Path) -> None:
    assert _names(iter_dmi_files(dmi_tree)) == ["A.DMI", "b.dmi", "c.dmi", "d.dmi"]


@pytest.mark.parametrize(("depth", "expected"), [(0, ["A.DMI", "b.dmi"]), (1, ["A.DMI", "b.dmi", "c.dmi"])])
def test_iter_dmi_files_respects_depth(dmi_tree: Path, depth: int, expected: list[str]) -> None:
    assert _names(iter_dmi_files(dmi_tree, max_depth=depth)) == expected


def test_iter_dmi_files_single_file_root(dmi_tree: Path) -> None:
    assert _names(iter_dmi_files(dmi_tree / "b.dmi")) == ["b.dmi"]
    assert list(iter_dmi_files(dmi_tree / "notes.txt")) == []
    assert list(iter_dmi_files(dmi_tree / "missing")) == []


def test_read_state_names_keeps_file_order_and_duplicates(write_dmi, state_spec) -> None:
    path = write_dmi("dup.dmi", [state_spec("b"), state_spec("a", dirs=4), state_spec("b")])
    assert read_state_names(path) == ["b", "a", "b"]


def test_read_state_names_tags_path(tmp_path: Path) -> None:
    bad = tmp_path / "bad.dmi"
    bad.write_bytes(b"garbage")
    with pytest.raises(DmiDecodeError) as excinfo:
        read_state_names(bad)
    assert excinfo.value.path == str(bad)


def test_catalog_add_folder_and_failures(dmi_tree: Path) -> None:
    (dmi_tree / "broken.dmi").write_bytes(b"garbage")
    catalog = DmiCatalog()

    added = catalog.add_folder(dmi_tree)

    assert added == 4
    assert len(catalog) == 4
    assert dmi_tree / "sub" / "c.dmi" in catalog
    assert list(catalog.failures) == [path_key(dmi_tree / "broken.dmi")]
    assert catalog.failures[path_key(dmi_tree / "broken.dmi")].startswith("decode:")

    # Already loaded files are skipped on a rescan.
    assert catalog.add_folder(dmi_tree) == 0


def test_catalog_entries_sorted_by_key(dmi_tree: Path) -> None:
    catalog = DmiCatalog()
    catalog.add(dmi_tree / "sub" / "c.dmi")
    catalog.add(dmi_tree / "b.dmi")

    assert [e.path for e in catalog.entries] == sorted([path_key(dmi_tree / "b.dmi"), path_key(dmi_tree / "sub" / "c.dmi")])


def test_catalog_joined_states(write_dmi, state_spec) -> None:
    path = write_dmi("mob.dmi", [state_spec("idle"), state_spec("walk_north"), state_spec("walk_south")])
    catalog = DmiCatalog()
    catalog.add(path)

    assert catalog.joined_states(path) == "idle, walk_north, walk_south"
    assert catalog.joined_states(path, "|") == "idle|walk_north|walk_south"
    assert catalog.joined_states(path.with_name("other.dmi")) == ""


def test_catalog_filtering_by_state_and_path(write_dmi, state_spec) -> None:
    mob = write_dmi("mob.dmi", [state_spec("idle"), state_spec("walk_north"), state_spec("walk_south")])
    turf = write_dmi("turf.dmi", [state_spec("floor"), state_spec("wall")])
    catalog = DmiCatalog()
    catalog.add(mob)
    catalog.add(turf)

    by_state = catalog.filter("walk_")
    assert [(Path(e.path).name, e.states) for e in by_state] == [("mob.dmi", ["walk_north", "walk_south"])]

    by_path = catalog.filter("turf.dmi")
    assert [(Path(e.path).name, e.states) for e in by_path] == [("turf.dmi", ["floor", "wall"])]

    assert len(catalog.filter("")) == 2
    assert catalog.filter("no-such-thing") == []

    # Filtering never narrows the stored entries.
    assert catalog.joined_states(mob) == "idle, walk_north, walk_south"


def test_catalog_paging(write_dmi, state_spec) -> None:
    catalog = DmiCatalog()
    for name in ("a.dmi", "b.dmi", "c.dmi"):
        catalog.add(write_dmi(name, [state_spec("s")]))

    assert DmiCatalog.page_count(len(catalog), 2) == 2
    assert DmiCatalog.page_count(0) == 1
    assert [Path(e.path).name for e in catalog.page(0, 2)] == ["a.dmi", "b.dmi"]
    assert [Path(e.path).name for e in catalog.page(1, 2)] == ["c.dmi"]
    assert catalog.page(2, 2) == []
    assert catalog.page(-1, 2) == []


def test_catalog_remove_and_clear(write_dmi, state_spec, tmp_path: Path) -> None:
    path = write_dmi("a.dmi", [state_spec("s")])
    catalog = DmiCatalog()
    catalog.add(path)
    bad = tmp_path / "bad.dmi"
    bad.write_bytes(b"x")
    assert catalog.add(bad) is None

    assert catalog.remove(path) is True
    assert catalog.remove(path) is False
    assert path not in catalog

    catalog.clear()
    assert catalog.failures == {}


def test_catalog_scan_survives_oversized_description(tmp_path: Path, write_dmi, state_spec) -> None:
    write_dmi("scan/a.dmi", [state_spec("idle")])
    write_dmi("scan/huge.dmi", [state_spec(f"state{i:05d}") for i in range(40_000)], image_count=1)
    write_dmi("scan/z.dmi", [state_spec("walk")])
    catalog = DmiCatalog()

    assert catalog.add_folder(tmp_path / "scan") == 2
    assert [Path(e.path).name for e in catalog.entries] == ["a.dmi", "z.dmi"]
    assert list(catalog.failures) == [path_key(tmp_path / "scan" / "huge.dmi")]
