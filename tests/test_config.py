"""Tests for the YAML config and static table loaders."""

import pytest
import yaml
from pydantic import ValidationError

from cognition_kernel.models.action import ScoringModel
from cognition_kernel.rng.streams import derive_rng
from cognition_kernel.tables.loader import default_static_tables, load_engine_config, load_static_tables


class TestEngineConfig:
    def test_missing_file_gives_defaults(self, tmp_path):
        cfg = load_engine_config(tmp_path / "absent.yaml")
        assert cfg.decision.temperature == 0.5
        assert cfg.decision.scoring_model == ScoringModel.ADDITIVE_RISK
        assert cfg.mass.hotspot_threshold == 0.6

    def test_partial_file_overrides(self, tmp_path):
        path = tmp_path / "engine.yaml"
        path.write_text(
            "decision:\n"
            "  temperature: 0.0\n"
            "  scoring_model: multiplicative\n"
            "gating:\n"
            "  weapon_min: 0.7\n"
            "pipeline:\n"
            "  smoothing_alpha: 0.3\n"
        )
        cfg = load_engine_config(path)
        assert cfg.decision.temperature == 0.0
        assert cfg.decision.scoring_model == ScoringModel.MULTIPLICATIVE
        assert cfg.decision.penalty_factor == 0.4
        assert cfg.gating.weapon_min == 0.7
        assert cfg.pipeline.smoothing_alpha == 0.3

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "engine.yaml"
        path.write_text("")
        assert load_engine_config(path).decision.momentum_bonus == 0.1

    def test_malformed_yaml_raises(self, tmp_path):
        path = tmp_path / "engine.yaml"
        path.write_text("decision: [unclosed\n")
        with pytest.raises(yaml.YAMLError):
            load_engine_config(path)

    def test_invalid_values_raise(self, tmp_path):
        path = tmp_path / "engine.yaml"
        path.write_text("decision:\n  scoring_model: quadratic\n")
        with pytest.raises(ValidationError):
            load_engine_config(path)


class TestStaticTables:
    def test_missing_file_gives_builtins(self, tmp_path):
        tables = load_static_tables(tmp_path / "tables.yaml")
        assert [g.id for g in tables.goals] == [g.id for g in default_static_tables().goals]
        assert tables.goal("safety").value == 1.0

    def test_file_replaces_tables(self, tmp_path):
        path = tmp_path / "tables.yaml"
        path.write_text(
            "goals:\n"
            "  - id: survive\n"
            "    value: 0.9\n"
            "    bias: -0.5\n"
            "    inputs:\n"
            "      danger: 2.0\n"
            "trait_matrix:\n"
            "  timid:\n"
            "    'Goal:survive':\n"
            "      multiplier: 1.2\n"
        )
        tables = load_static_tables(path)
        assert [g.id for g in tables.goals] == ["survive"]
        assert tables.goal("survive").inputs == {"danger": 2.0}
        assert tables.trait_matrix["timid"]["Goal:survive"].multiplier == 1.2
        assert tables.trait_matrix["timid"]["Goal:survive"].bonus == 0.0
        assert tables.goal("safety") is None


class TestRandomStreams:
    def test_same_keys_same_stream(self):
        assert derive_rng(5, 1, "A").random() == derive_rng(5, 1, "A").random()

    def test_keys_separate_streams(self):
        assert derive_rng(5, 1, "A").random() != derive_rng(5, 1, "B").random()
        assert derive_rng(5, 1, "A").random() != derive_rng(5, 2, "A").random()
        assert derive_rng(5, 1, "A").random() != derive_rng(6, 1, "A").random()
