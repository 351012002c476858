from pathlib import Path

import pandas as pd
from typer.testing import CliRunner

from pokestats.cli import app


ROOT = Path(__file__).resolve().parents[1]
DATA = str(ROOT / "examples" / "datasets" / "pokemon_sample.csv")
CONFIG = str(ROOT / "examples" / "configs" / "pokemon.yaml")

runner = CliRunner()


def invoke(args):
    # wide enough that rich never wraps table cells
    return runner.invoke(app, args, env={"COLUMNS": "240"})


def test_preview_and_validate():
    res = invoke(["preview", DATA, "--n", "3"])
    assert res.exit_code == 0, res.output
    assert "Bulbasaur" in res.output
    assert "Charmander" not in res.output

    res = invoke(["validate-data", DATA, "--config", CONFIG])
    assert res.exit_code == 0, res.output
    assert "48 rows" in res.output


def test_summarize_writes_csv(tmp_path):
    out = tmp_path / "summary.csv"
    res = invoke(["summarize", DATA, "--output", str(out)])
    assert res.exit_code == 0, res.output
    table = pd.read_csv(out)
    assert table.columns.tolist() == ["Type 1", "n", "mean.Attack", "sd.Attack"]
    assert table["n"].sum() == 44

    res = invoke(["summarize", DATA, "--generation", "0", "--stat", "Speed", "--output", str(out)])
    assert res.exit_code == 0, res.output
    assert pd.read_csv(out)["n"].sum() == 48


def test_summarize_unknown_column_is_a_usage_error():
    res = invoke(["summarize", DATA, "--stat", "Luck"])
    assert res.exit_code == 2


def test_summarize_non_numeric_stat_is_a_usage_error():
    res = invoke(["summarize", DATA, "--stat", "Name"])
    assert res.exit_code == 2
    res = invoke(["summarize", DATA, "--generation", "0", "--stat", "Name"])
    assert res.exit_code == 2


def test_malformed_config_is_a_usage_error(tmp_path):
    cfg = tmp_path / "broken.yaml"
    cfg.write_text("columns: [unclosed\n", encoding="utf-8")
    res = invoke(["preview", DATA, "--config", str(cfg)])
    assert res.exit_code == 2
    assert "Invalid config" in res.output


def test_plots_without_primary_types_are_usage_errors(tmp_path):
    lines = (ROOT / "examples" / "datasets" / "pokemon_sample.csv").read_text(encoding="utf-8").splitlines()
    header = lines[0].split(",")
    idx = header.index("Type 1")
    rows = [line.split(",") for line in lines[1:]]
    for row in rows:
        row[idx] = ""
    data = tmp_path / "untyped.csv"
    data.write_text("\n".join(",".join(r) for r in [header, *rows]) + "\n", encoding="utf-8")

    for command in ["box", "composition"]:
        res = invoke(["plot", command, str(data), "--out", str(tmp_path / f"{command}.png")])
        assert res.exit_code == 2, res.output
        assert not (tmp_path / f"{command}.png").exists()


def test_averages_long(tmp_path):
    out = tmp_path / "long.csv"
    res = invoke(["averages", DATA, "--long", "--output", str(out)])
    assert res.exit_code == 0, res.output
    assert pd.read_csv(out).columns.tolist() == ["Type 1", "Avg.Total", "Stat", "Average"]


def test_defensive():
    res = invoke(["defensive", DATA, "--max-rows", "50"])
    assert res.exit_code == 0, res.output
    assert "Onix" in res.output


def test_plot_commands(tmp_path):
    cases = [
        ["scatter", "--color-by", "Type 1"],
        ["box"],
        ["jitter", "--title", "Attack stats"],
        ["composition"],
        ["facets", "--highlight"],
    ]
    for args in cases:
        out = tmp_path / f"{args[0]}.png"
        res = invoke(["plot", *args, DATA, "--out", str(out), "--dpi", "60"])
        assert res.exit_code == 0, res.output
        assert out.exists()


def test_plot_rejects_unknown_format(tmp_path):
    res = invoke(["plot", "box", DATA, "--out", str(tmp_path / "box.bmp")])
    assert res.exit_code == 2


def test_missing_data_file(tmp_path):
    res = invoke(["preview", str(tmp_path / "nope.csv")])
    assert res.exit_code == 1
    assert "not found" in res.output


def test_walkthrough_command(tmp_path):
    res = invoke(
        [
            "walkthrough",
            DATA,
            "--out-dir",
            str(tmp_path),
            "--dpi",
            "100",
            "--width",
            "20",
            "--height",
            "15",
            "--units",
            "cm",
        ],
    )
    assert res.exit_code == 0, res.output
    assert (tmp_path / "beautiful-plot.pdf").exists()
    assert (tmp_path / "stat_composition.png").exists()
