import json

import pytest

from aptwatcher.models import SnapshotUnit
from aptwatcher.runner import AptWatcherRunner
from aptwatcher.store import StoreCorruptError, StoreFile


def build_runner(tmp_path, scrapers=None) -> AptWatcherRunner:
    store_file = StoreFile(path=tmp_path / "data" / "apartments.json")
    return AptWatcherRunner(
        store_file=store_file,
        scrapers=scrapers if scrapers is not None else {"site": lambda: {}},
    )


def make_unit(residence: str, price: float) -> SnapshotUnit:
    return SnapshotUnit(
        residence=residence,
        bedroom="1 Bedroom",
        bathroom="1 Bath",
        size=600,
        price=price,
        site="site",
    )


def test_runner_persists_reconciled_store(tmp_path):
    round_one = {"A": make_unit("A", 2000), "B": make_unit("B", 2200)}
    runner = build_runner(tmp_path, scrapers={"site": lambda: round_one})

    summary = runner.run(as_of="2025-01-01")

    assert summary.status == "success"
    assert summary.units_written == 2
    assert summary.prices_written == 2
    assert [change.entry.residence for change in summary.changes.added] == ["A", "B"]
    assert summary.source_counts == {"site": 2}

    round_two = {"B": make_unit("B", 2150)}
    runner.scrapers = {"site": lambda: round_two}
    summary = runner.run(as_of="2025-01-02")

    assert summary.prices_written == 4
    assert [change.entry.residence for change in summary.changes.changed] == ["B"]
    assert [change.entry.residence for change in summary.changes.delisted] == ["A"]

    document = json.loads(runner.store_file.path.read_text(encoding="utf-8"))
    assert len(document["units"]) == 2
    assert document["prices"][-1] == {
        "residence": "A",
        "price": 2000,
        "timestamp": "2025-01-02",
        "deleted": True,
        "site": "site",
    }


def test_runner_dry_run_does_not_write(tmp_path):
    runner = build_runner(tmp_path, scrapers={"site": lambda: {"A": make_unit("A", 2000)}})

    summary = runner.run(dry_run=True, as_of="2025-01-01")

    assert summary.status == "dry_run"
    assert summary.prices_written == 1
    assert not runner.store_file.path.exists()


def test_runner_skips_when_every_source_fails(tmp_path):
    runner = build_runner(tmp_path, scrapers={"site": lambda: {"A": make_unit("A", 2000)}})
    runner.run(as_of="2025-01-01")

    def broken():
        raise RuntimeError("page load timed out")

    runner.scrapers = {"site": broken}
    summary = runner.run(as_of="2025-01-02")

    assert summary.status == "skipped"
    assert summary.failed_sources == ["site"]
    assert len(summary.changes) == 0
    assert len(runner.store_file.load().prices) == 1


def test_runner_refuses_corrupt_store(tmp_path):
    calls = []
    runner = build_runner(tmp_path, scrapers={"site": lambda: calls.append(1) or {}})
    runner.store_file.path.parent.mkdir(parents=True)
    runner.store_file.path.write_text("{broken", encoding="utf-8")

    with pytest.raises(StoreCorruptError):
        runner.run(as_of="2025-01-01")

    assert calls == []
    assert runner.store_file.path.read_text(encoding="utf-8") == "{broken"


def make_site_unit(residence: str, price: float, site: str) -> SnapshotUnit:
    return SnapshotUnit(
        residence=residence,
        bedroom="1 Bedroom",
        bathroom="1 Bath",
        size=600,
        price=price,
        site=site,
    )


def test_runner_keeps_units_of_failed_source_listed(tmp_path):
    runner = build_runner(
        tmp_path,
        scrapers={
            "s1": lambda: {"A": make_site_unit("A", 2000, "s1")},
            "s2": lambda: {"B": make_site_unit("B", 2500, "s2")},
        },
    )
    runner.run(as_of="2025-01-01")

    def broken():
        raise RuntimeError("page load timed out")

    runner.scrapers = {"s1": lambda: {"A": make_site_unit("A", 2000, "s1")}, "s2": broken}
    summary = runner.run(as_of="2025-01-02")

    assert summary.status == "success"
    assert summary.failed_sources == ["s2"]
    assert summary.changes.delisted == []
    assert all(not entry.deleted for entry in runner.store_file.load().prices)


def test_runner_keeps_units_of_inactive_source_listed(tmp_path):
    runner = build_runner(
        tmp_path,
        scrapers={
            "s1": lambda: {"A": make_site_unit("A", 2000, "s1")},
            "s2": lambda: {"B": make_site_unit("B", 2500, "s2")},
        },
    )
    runner.run(as_of="2025-01-01")

    runner.scrapers = {"s1": lambda: {}}
    runner.inactive_sources = {"s2"}
    summary = runner.run(as_of="2025-01-02")

    assert [change.entry.residence for change in summary.changes.delisted] == ["A"]
