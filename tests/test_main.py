"""
Test Suite for the Pipeline Entry Point
=======================================

End-to-end runs of main() on a small synthetic CSV.
"""

import json

import pytest
import yaml

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

import main as pipeline


@pytest.fixture
def workspace(hourly_raw, tmp_path, monkeypatch):
    """A temp directory with a latin-1 CSV and a matching config."""
    monkeypatch.chdir(tmp_path)

    data_path = tmp_path / "bikes.csv"
    hourly_raw.to_csv(data_path, index=False, encoding="latin-1")

    config = {
        "data": {"raw_path": str(data_path), "encoding": "latin-1", "date_format": "%d/%m/%Y"},
        "split": {"strata": "season", "train_prop": 0.75, "n_folds": 10, "random_state": 42},
        "output": {
            "figures_path": str(tmp_path / "reports" / "figures"),
            "reports_path": str(tmp_path / "reports"),
            "model_path": str(tmp_path / "models" / "final.joblib"),
        },
        "logging": {"level": "INFO"},
    }
    config_path = tmp_path / "config.yaml"
    config_path.write_text(yaml.safe_dump(config))

    return tmp_path, config_path


class TestMain:
    """Tests for main()."""

    def test_full_pipeline(self, workspace):
        root, config_path = workspace

        assert pipeline.main(["--config", str(config_path)]) == 0

        reports = root / "reports"
        assert (reports / "metrics" / "model_comparison.csv").exists()
        assert (reports / "metrics" / "coefficients.csv").exists()
        assert (reports / "figures" / "05_correlation_matrix.png").exists()
        assert (reports / "figures" / "eval_residuals.png").exists()
        assert (root / "models" / "final.joblib").exists()

        with open(reports / "metrics" / "evaluation_metrics.json") as f:
            metrics = json.load(f)
        assert metrics["selected_recipe"] in {"base", "interactions", "polynomial"}
        # 240 days, one without operating hours
        assert metrics["n_train"] + metrics["n_test"] == 239

    def test_aggregate_phase(self, workspace):
        _, config_path = workspace

        result = pipeline.run_single_phase("aggregate", config_path=str(config_path))

        assert len(result["daily"]) == 239
        assert result["daily"]["date"].is_unique

    def test_missing_config(self, tmp_path):
        assert pipeline.main(["--config", str(tmp_path / "missing.yaml")]) == 1

    def test_unreadable_data(self, workspace):
        root, config_path = workspace
        bad = root / "bad.csv"
        bad.write_text("not,a,bike,file\n1,2,3,4\n")

        assert pipeline.main(["--config", str(config_path), "--data", str(bad), "--phase", "eda"]) == 1

    def test_unknown_phase(self, workspace):
        _, config_path = workspace

        with pytest.raises(ValueError, match="Unknown phase"):
            pipeline.run_single_phase("predict", config_path=str(config_path))


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
