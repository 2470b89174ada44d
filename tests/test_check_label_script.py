"""Tests for the check_label command-line script."""
import json
from pathlib import Path

from scripts.check_label import main


def test_options(capsys):
    assert main(["--options"]) == 0
    out = json.loads(capsys.readouterr().out)
    assert out["categories"] == ["Toys", "Baby Products", "Cosmetics"]


def test_single_label(tmp_path, capsys, toy_label_usa):
    path = tmp_path / "label.txt"
    path.write_text(toy_label_usa, encoding="utf-8")
    assert main([str(path), "--category", "toys", "--jurisdictions", "US"]) == 0
    out = json.loads(capsys.readouterr().out)
    assert out["report"]["complianceScore"] == 100


def test_unknown_category_exit_code(tmp_path, capsys):
    path = tmp_path / "label.txt"
    path.write_text("Made in China", encoding="utf-8")
    assert main([str(path), "--category", "lamps", "--jurisdictions", "US"]) == 1
    assert "error" in json.loads(capsys.readouterr().out)


def test_missing_category(tmp_path, capsys):
    path = tmp_path / "label.txt"
    path.write_text("Made in China", encoding="utf-8")
    assert main([str(path)]) == 2


def test_batch(capsys):
    csv_path = Path(__file__).resolve().parent.parent / "sample_data" / "batch_example.csv"
    assert main([str(csv_path), "--batch"]) == 0
    rows = json.loads(capsys.readouterr().out)
    assert [r["label_id"] for r in rows] == ["toy_1", "toy_2", "cream_1", "carrier_1", "lamp_1"]
