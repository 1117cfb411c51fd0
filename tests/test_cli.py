import json

import pandas as pd
import pytest

from loop_route import cli


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch):
    monkeypatch.setattr(cli, "setup_logging", lambda verbose: None)


def write_stops(tmp_path):
    path = tmp_path / "stops.json"
    path.write_text(json.dumps({"stops": [
        {"id": "a", "lat": 0.0, "lon": 0.0},
        {"id": "b", "lat": 0.0, "lon": 1.0},
        {"id": "c", "lat": 1.0, "lon": 1.0},
        {"id": "d", "lat": 1.0, "lon": 0.0},
    ]}))
    return path


def write_order(tmp_path, order):
    path = tmp_path / "order.json"
    path.write_text(json.dumps(order))
    return path


def run_cli(args, capsys):
    code = cli.main([str(a) for a in args])
    return code, capsys.readouterr().out


def test_build(tmp_path, capsys):
    stops = write_stops(tmp_path)
    report = tmp_path / "report.csv"
    code, out = run_cli(["build", stops, "--report", report], capsys)
    assert code == 0
    result = json.loads(out)
    assert result["order"] == ["a", "b", "c", "d"]
    assert result["length_km"] > 0
    assert list(pd.read_csv(report)["id"]) == ["a", "b", "c", "d"]


def test_insert(tmp_path, capsys):
    stops = write_stops(tmp_path)
    order = write_order(tmp_path, ["a", "b", "c"])
    code, out = run_cli(["insert", stops, "--order", order, "--id", "d"], capsys)
    assert code == 0
    result = json.loads(out)
    assert result["order"] == ["a", "b", "c", "d"]
    assert result["delta_km"] > 0


def test_remove(tmp_path, capsys):
    order = write_order(tmp_path, ["a", "b", "c"])
    code, out = run_cli(["remove", "--order", order, "--id", "b"], capsys)
    assert code == 0
    assert json.loads(out) == {"order": ["a", "c"]}


def test_remove_numeric_ids(tmp_path, capsys):
    order = write_order(tmp_path, [1, 2, 3])
    code, out = run_cli(["remove", "--order", order, "--id", "2"], capsys)
    assert code == 0
    assert json.loads(out) == {"order": [1, 3]}


def test_optimize(tmp_path, capsys):
    stops = write_stops(tmp_path)
    order = write_order(tmp_path, ["a", "c", "b", "d"])
    code, out = run_cli(["optimize", stops, "--order", order], capsys)
    assert code == 0
    result = json.loads(out)
    assert result["optimized_length_km"] < result["current_length_km"]


def test_length(tmp_path, capsys):
    stops = write_stops(tmp_path)
    order = write_order(tmp_path, ["a", "b"])
    code, out = run_cli(["length", stops, "--order", order], capsys)
    assert code == 0
    assert json.loads(out)["length_km"] == pytest.approx(2 * 111.195, abs=0.01)


def test_config_file(tmp_path, capsys):
    stops = write_stops(tmp_path)
    cfg = tmp_path / "engine.yaml"
    cfg.write_text("improve: false\n")
    code, out = run_cli(["--config", cfg, "build", stops], capsys)
    assert code == 0
    assert json.loads(out)["order"] == ["a", "b", "c", "d"]


def test_errors_exit_nonzero(tmp_path, capsys):
    stops = write_stops(tmp_path)
    order = write_order(tmp_path, ["a", "b", "c", "d"])
    code, out = run_cli(["insert", stops, "--order", order, "--id", "b"], capsys)
    assert code == 1
    assert out == ""
    code, _ = run_cli(["remove", "--order", order, "--id", "zzz"], capsys)
    assert code == 1
    code, _ = run_cli(["build", tmp_path / "missing.json"], capsys)
    assert code == 1
    unknown = tmp_path / "unknown.json"
    unknown.write_text(json.dumps({"bogus": 1}))
    code, out = run_cli(["--config", unknown, "build", stops], capsys)
    assert code == 1
    assert out == ""
    broken = tmp_path / "broken.yaml"
    broken.write_text("improve: [unclosed\n")
    code, out = run_cli(["--config", broken, "build", stops], capsys)
    assert code == 1
    assert out == ""
