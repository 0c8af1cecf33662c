import json
from types import SimpleNamespace

import pandas as pd
import pytest

import prop_projector.main as main_mod
from prop_projector.errors import SingularSystemError
from prop_projector.ml.regression.trainer import ModelTrainer


def _json_tail(output):
    return json.loads(output[output.index("{"):])


@pytest.fixture
def game_logs(tmp_path, history_factory):
    games = history_factory("p1") + history_factory("p2")
    path = tmp_path / "games.csv"
    pd.DataFrame([g.to_dict() for g in games]).to_csv(path, index=False)
    return path


@pytest.fixture
def model_dir(tmp_path):
    return str(tmp_path / "models")


def _train(game_logs, model_dir, *extra):
    return main_mod.main([
        "--model-dir", model_dir,
        "train",
        "--game-logs", str(game_logs),
        "--season", "2024",
        "--today", "2025-01-01",
        *extra,
    ])


def test_train_and_list_models(game_logs, model_dir, capsys):
    assert _train(game_logs, model_dir, "--stat-type", "points", "rebounds") == 0
    out = capsys.readouterr().out
    assert "Loaded 80 games for 2 players" in out
    assert "✓ GENERAL/points/2024" in out
    report = _json_tail(out)
    assert [row["key"] for row in report["trained"]] == ["GENERAL/points/2024", "GENERAL/rebounds/2024"]
    assert report["failed"] == 0

    assert main_mod.main(["--model-dir", model_dir, "models"]) == 0
    listing = json.loads(capsys.readouterr().out)
    assert [row["key"] for row in listing["models"]] == ["GENERAL/points/2024", "GENERAL/rebounds/2024"]
    assert listing["models"][0]["training_data_size"] == 50


def test_train_unknown_player_fails(game_logs, model_dir, capsys):
    assert _train(game_logs, model_dir, "--player", "nobody") == 1
    out = capsys.readouterr().out
    assert "✗ nobody points" in out


def test_train_missing_file(tmp_path, model_dir, capsys):
    assert _train(tmp_path / "missing.csv", model_dir) == 1
    assert "Error loading data" in capsys.readouterr().out


def test_project_blends_with_trained_model(game_logs, model_dir, capsys):
    _train(game_logs, model_dir)
    capsys.readouterr()

    code = main_mod.main([
        "--model-dir", model_dir,
        "project",
        "--player", "p1",
        "--opponent", "SEA",
        "--season", "2024",
        "--date", "2024-08-10",
        "--line", "18.5",
        "--game-logs", str(game_logs),
        "--heuristic-value", "18.5",
        "--heuristic-confidence", "0.7",
    ])

    assert code == 0
    result = json.loads(capsys.readouterr().out)
    assert result["factors"]["regression_factor"] > 0.0
    assert result["uncertainty"] is not None
    assert result["recommendation"] in ("OVER", "UNDER", "PASS")


def test_project_handler_passes_heuristic_through_without_model(tmp_path, model_dir, capsys):
    heuristic_file = tmp_path / "heuristic.json"
    with open(heuristic_file, "w") as f:
        json.dump({
            "projected_value": 21.0,
            "confidence_score": 0.8,
            "recommendation": "OVER",
            "edge": 2.5,
            "factors": {"pace": 1.02},
        }, f)

    args = SimpleNamespace(
        model_dir=model_dir,
        game_logs=None,
        reference=None,
        confidence=0.95,
        today="2025-01-01",
        heuristic=str(heuristic_file),
        heuristic_value=0.0,
        heuristic_confidence=0.5,
        player="p1",
        stat_type="points",
        opponent="SEA",
        home=True,
        season="2024",
        line=18.5,
        team="MIN",
        date=None,
    )

    assert main_mod.project(args) == 0
    result = json.loads(capsys.readouterr().out)
    assert result["projected_value"] == 21.0
    assert result["recommendation"] == "OVER"
    assert result["factors"] == {"pace": 1.02, "regression_factor": 0.0}


def test_project_handler_rejects_unknown_stat(model_dir, capsys):
    args = SimpleNamespace(
        model_dir=model_dir,
        game_logs=None,
        reference=None,
        confidence=0.95,
        today=None,
        heuristic=None,
        heuristic_value=10.0,
        heuristic_confidence=0.5,
        player="p1",
        stat_type="blocks",
        opponent="SEA",
        home=False,
        season="2024",
        line=None,
        team=None,
        date=None,
    )
    assert main_mod.project(args) == 1
    assert "Error" in capsys.readouterr().out


def test_evaluate_reports_folds_and_holdout(game_logs, model_dir, capsys):
    code = main_mod.main([
        "--model-dir", model_dir,
        "evaluate",
        "--game-logs", str(game_logs),
        "--season", "2024",
        "--folds", "3",
        "--today", "2025-01-01",
    ])

    assert code == 0
    out = capsys.readouterr().out
    assert "Extracted 50 samples for GENERAL points" in out
    report = _json_tail(out)
    assert len(report["cross_validation"]["folds"]) == 3
    assert report["split"] == {"train": 35, "validation": 7, "test": 8}
    assert report["holdout"]["n_samples"] == 8


def test_main_without_command_prints_help(capsys):
    assert main_mod.main([]) == 1
    assert "usage" in capsys.readouterr().out


@pytest.fixture
def singular_fit(monkeypatch):
    def fit(self, *args, **kwargs):
        raise SingularSystemError("Near-singular pivot 1e-14 in column 3")

    monkeypatch.setattr(ModelTrainer, "fit", fit)


def test_train_reports_singular_system(game_logs, model_dir, capsys, singular_fit):
    assert _train(game_logs, model_dir, "--on-singular", "raise") == 1
    assert "✗ GENERAL points: Near-singular pivot" in capsys.readouterr().out


def test_evaluate_reports_singular_system(game_logs, model_dir, capsys, singular_fit):
    code = main_mod.main([
        "--model-dir", model_dir,
        "evaluate",
        "--game-logs", str(game_logs),
        "--season", "2024",
        "--today", "2025-01-01",
        "--on-singular", "raise",
    ])
    assert code == 1
    assert "Error: Near-singular pivot" in capsys.readouterr().out
