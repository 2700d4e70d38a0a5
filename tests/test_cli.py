"""
Tests for the ghg_engine/main.py sub-command handlers.
"""
import json

import pytest

from ghg_engine.main import (
    build_parser,
    cmd_calculate,
    cmd_legislation,
    cmd_offsets,
    cmd_test_db,
    cmd_timeline,
    main,
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in ("DATABASE_URL", "TIMELINE_HORIZON", "DEFAULT_REDUCTION_TARGET", "COMPLIANCE_WEIGHTS"):
        monkeypatch.delenv(name, raising=False)


def parse(*argv):
    return build_parser().parse_args(list(argv))


class TestCli:

    def test_calculate_writes_artifacts(self, tmp_path):
        inputs = tmp_path / "site.json"
        inputs.write_text(json.dumps({"diesel": 100, "electricity": 5000}), encoding="utf-8")
        outdir = tmp_path / "out"
        assert cmd_calculate(parse("calculate", "--file", str(inputs), "--region", "JP",
                                   "--outdir", str(outdir))) == 0
        result = json.loads((outdir / "site" / "result.json").read_text(encoding="utf-8"))
        assert result["jurisdiction"] == "Japan"
        assert result["emissions"]["scope1"] == pytest.approx(0.268)
        assert (outdir / "site" / "snapshot.json").exists()

    def test_calculate_missing_file(self, tmp_path):
        assert cmd_calculate(parse("calculate", "--file", str(tmp_path / "nope.json"))) == 1

    def test_calculate_bad_extension(self, tmp_path):
        path = tmp_path / "site.txt"
        path.write_text("diesel 100", encoding="utf-8")
        assert cmd_calculate(parse("calculate", "--file", str(path))) == 1

    def test_use_db_without_url_falls_back(self, tmp_path):
        inputs = tmp_path / "site.csv"
        inputs.write_text("diesel,10\n", encoding="utf-8")
        assert cmd_calculate(parse("calculate", "--file", str(inputs), "--use-db")) == 0

    def test_bad_weights_exit_with_config_error(self, tmp_path, monkeypatch):
        inputs = tmp_path / "site.json"
        inputs.write_text(json.dumps({"diesel": 100}), encoding="utf-8")
        monkeypatch.setenv("COMPLIANCE_WEIGHTS", '{"scope1": -3}')
        monkeypatch.setattr("sys.argv", ["ghg-engine", "calculate", "--file", str(inputs)])
        with pytest.raises(SystemExit) as exc:
            main()
        assert exc.value.code == 2

    def test_timeline(self, tmp_path):
        snapshot = tmp_path / "snap.json"
        snapshot.write_text(json.dumps({
            "rawInputs": {"diesel": 1000},
            "reductionStrategies": [{"id": "a", "reductionPotential": 10, "timeframe": "short",
                                     "implementationYear": 2025, "isConfirmed": True}],
        }), encoding="utf-8")
        assert cmd_timeline(parse("timeline", "--file", str(snapshot), "--year", "2025", "--target", "30")) == 0

    def test_legislation_and_offsets(self):
        assert cmd_legislation(parse("legislation", "--region", "uk", "--employees", "300")) == 0
        assert cmd_offsets(parse("offsets", "--region", "AU", "--emissions", "80000")) == 0

    def test_test_db_without_url(self):
        assert cmd_test_db(parse("test-db")) == 1
