import json

import monitor_apartments
from aptwatcher.models import SnapshotUnit


def test_main_without_action_prints_help(capsys):
    assert monitor_apartments.main([]) == 1
    assert "usage" in capsys.readouterr().out


def test_main_migrate_corrupt_file_exits_nonzero(tmp_path):
    path = tmp_path / "apartments.json"
    path.write_text("not json", encoding="utf-8")

    assert monitor_apartments.main(["--migrate", "--store", str(path)]) == 1


def test_main_migrate_missing_file_is_success(tmp_path):
    path = tmp_path / "apartments.json"
    assert monitor_apartments.main(["--migrate", "--store", str(path)]) == 0
    assert not path.exists()


def test_main_run_writes_store(tmp_path, monkeypatch):
    unit = SnapshotUnit(
        residence="2104",
        bedroom="1 Bedroom",
        bathroom="1 Bath",
        size=702,
        price=3250,
        site="journaljc",
    )
    monkeypatch.setattr(
        monitor_apartments, "SCRAPERS", {"journaljc": lambda: {"2104": unit}}
    )
    monkeypatch.delenv("SLACK_WEBHOOK", raising=False)
    path = tmp_path / "apartments.json"
    export_path = tmp_path / "apartments.xlsx"

    exit_code = monitor_apartments.main(
        ["--run", "--store", str(path), "--as-of", "2025-05-01", "--export", str(export_path)]
    )

    assert exit_code == 0
    document = json.loads(path.read_text(encoding="utf-8"))
    assert document["prices"] == [
        {
            "residence": "2104",
            "price": 3250,
            "timestamp": "2025-05-01",
            "deleted": False,
            "site": "journaljc",
        }
    ]
    assert export_path.exists()


def test_main_run_corrupt_store_exits_nonzero(tmp_path, monkeypatch):
    monkeypatch.setattr(monitor_apartments, "SCRAPERS", {"journaljc": lambda: {}})
    path = tmp_path / "apartments.json"
    path.write_text("{", encoding="utf-8")

    assert monitor_apartments.main(["--run", "--store", str(path)]) == 1


def test_main_run_with_null_stored_price(tmp_path, monkeypatch):
    unit = SnapshotUnit(
        residence="A",
        bedroom="1 Bedroom",
        bathroom="1 Bath",
        size=600,
        price=2000,
        site="journaljc",
    )
    monkeypatch.setattr(monitor_apartments, "SCRAPERS", {"journaljc": lambda: {"A": unit}})
    monkeypatch.delenv("SLACK_WEBHOOK", raising=False)
    path = tmp_path / "apartments.json"
    path.write_text(
        json.dumps(
            {
                "units": [{"residence": "A", "bedroom": "1 Bedroom", "bathroom": "1 Bath", "size": 600}],
                "prices": [{"residence": "A", "price": None, "timestamp": "Wed Jan 01 2025"}],
            }
        ),
        encoding="utf-8",
    )

    assert monitor_apartments.main(["--run", "--store", str(path), "--as-of", "2025-05-01"]) == 0

    prices = json.loads(path.read_text(encoding="utf-8"))["prices"]
    assert [(entry["price"], entry["deleted"]) for entry in prices] == [(0, False), (2000, False)]


def test_main_run_site_selection_keeps_other_sites_listed(tmp_path, monkeypatch):
    def site_unit(residence: str, site: str) -> SnapshotUnit:
        return SnapshotUnit(
            residence=residence,
            bedroom="1 Bedroom",
            bathroom="1 Bath",
            size=600,
            price=2000,
            site=site,
        )

    monkeypatch.setattr(
        monitor_apartments,
        "SCRAPERS",
        {
            "one": lambda: {"A": site_unit("A", "one")},
            "two": lambda: {"B": site_unit("B", "two")},
        },
    )
    monkeypatch.delenv("SLACK_WEBHOOK", raising=False)
    path = tmp_path / "apartments.json"

    assert monitor_apartments.main(["--run", "--store", str(path), "--as-of", "2025-05-01"]) == 0
    assert monitor_apartments.main(
        ["--run", "--store", str(path), "--as-of", "2025-05-02", "--site", "one"]
    ) == 0

    prices = json.loads(path.read_text(encoding="utf-8"))["prices"]
    assert len(prices) == 2
    assert not any(entry["deleted"] for entry in prices)
