"""Tests for configuration loading and validation."""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from campus.config.layering import apply_env_overrides, deep_merge, set_path
from campus.config.policies import GroupingStrategy, Policies, load_policies
from campus.config.settings import Settings


@pytest.fixture
def minimal_policy_dict() -> dict:
    return {
        "policy_version": "test-version",
        "aggregation": {
            "grouping_threshold": 0.8,
            "grouping_strategy": "all_members",
            "trigger_threshold": 50,
            "trigger_overrides": {"professor": 10},
            "max_batch_size": 200,
        },
        "submission": {"check_pending_duplicates": False},
    }


def make_settings(tmp_path: Path, config_dir: Path | None = None, **kwargs) -> Settings:
    return Settings(
        config_dir=config_dir or tmp_path / "config",
        paths={
            "data_dir": tmp_path / "data",
            "logs_dir": tmp_path / "logs",
            "metadata_dir": tmp_path / "metadata",
        },
        **kwargs,
    )


def test_load_policies_from_dict(minimal_policy_dict: dict) -> None:
    policies = load_policies(minimal_policy_dict)
    assert policies.policy_version == "test-version"
    assert policies.aggregation.grouping_strategy is GroupingStrategy.ALL_MEMBERS
    assert policies.aggregation.trigger_threshold_for("course") == 50
    assert policies.aggregation.trigger_threshold_for("professor") == 10
    assert policies.submission.check_pending_duplicates is False
    assert policies.aggregation.colors_for("university").primary == "#182B49"


def test_load_policies_does_not_mutate_source(minimal_policy_dict: dict) -> None:
    load_policies(minimal_policy_dict)
    assert minimal_policy_dict["aggregation"]["trigger_overrides"] == {"professor": 10}


def test_load_policies_from_yaml(tmp_path: Path, minimal_policy_dict: dict) -> None:
    path = tmp_path / "policies.yaml"
    path.write_text(yaml.safe_dump(minimal_policy_dict), encoding="utf-8")
    policies = load_policies(path)
    assert policies.aggregation.max_batch_size == 200


def test_missing_policy_file_raises(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_policies(tmp_path / "missing.yaml")


def test_policy_env_overrides_are_json_decoded(
    monkeypatch: pytest.MonkeyPatch, minimal_policy_dict: dict
) -> None:
    monkeypatch.setenv("CAMPUS_POLICY__AGGREGATION__TRIGGER_THRESHOLD", "7")
    monkeypatch.setenv("CAMPUS_POLICY__AGGREGATION__LINK_PROFESSORS", "false")
    policies = load_policies(minimal_policy_dict)
    assert policies.aggregation.trigger_threshold == 7
    assert policies.aggregation.link_professors is False


def test_invalid_policy_values_are_rejected(minimal_policy_dict: dict) -> None:
    minimal_policy_dict["aggregation"]["grouping_threshold"] = 1.5
    with pytest.raises(ValidationError):
        load_policies(minimal_policy_dict)
    with pytest.raises(ValidationError):
        Policies(policy_version="")


def test_settings_layer_default_and_environment_yaml(tmp_path: Path) -> None:
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    (config_dir / "default.yaml").write_text(
        yaml.safe_dump({"policies": {"aggregation": {"trigger_threshold": 40, "max_batch_size": 300}}}),
        encoding="utf-8",
    )
    (config_dir / "testing.yaml").write_text(
        yaml.safe_dump({"policies": {"aggregation": {"trigger_threshold": 5}}}),
        encoding="utf-8",
    )

    settings = make_settings(tmp_path, config_dir, environment="testing")

    assert settings.environment == "testing"
    assert settings.policies.aggregation.trigger_threshold == 5
    assert settings.policies.aggregation.max_batch_size == 300


def test_settings_nested_env_overrides(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CAMPUS_SETTINGS__POLICIES__POLICY_VERSION", "from-env")
    settings = make_settings(tmp_path)
    assert settings.policy_version == "from-env"


def test_settings_paths_and_store_location(tmp_path: Path) -> None:
    settings = make_settings(tmp_path)
    assert settings.paths.data_dir.exists()
    assert settings.resolved_store_path == tmp_path / "data" / "store.json"
    assert settings.log_file == tmp_path / "logs" / "campus.log"

    explicit = make_settings(tmp_path, store_path=tmp_path / "elsewhere.json")
    assert explicit.resolved_store_path == tmp_path / "elsewhere.json"


def test_explicit_policies_take_precedence(tmp_path: Path, minimal_policy_dict: dict) -> None:
    settings = make_settings(tmp_path, policies=minimal_policy_dict)
    assert settings.policies.policy_version == "test-version"
    assert settings.policies.aggregation.trigger_threshold == 50


def test_layering_env_overrides_decode_and_nest() -> None:
    target = {"aggregation": {"max_batch_size": 500}}
    environ = {
        "CAMPUS_POLICY__AGGREGATION__MAX_BATCH_SIZE": "50",
        "CAMPUS_POLICY__SUBMISSION__CHECK_COURSE_CODES": "false",
        "UNRELATED": "1",
    }
    apply_env_overrides(target, "CAMPUS_POLICY__", environ)
    assert target == {
        "aggregation": {"max_batch_size": 50},
        "submission": {"check_course_codes": False},
    }


def test_layering_rejects_override_through_scalar() -> None:
    with pytest.raises(ValueError, match="not a mapping"):
        set_path({"policy_version": "v1"}, ["policy_version", "major"], 2)


def test_layering_deep_merge_keeps_sibling_keys() -> None:
    merged = deep_merge(
        {"paths": {"data_dir": "a", "logs_dir": "b"}, "environment": "development"},
        {"paths": {"logs_dir": "c"}},
    )
    assert merged == {"paths": {"data_dir": "a", "logs_dir": "c"}, "environment": "development"}


def test_non_mapping_policy_file_is_rejected(tmp_path: Path) -> None:
    path = tmp_path / "policies.yaml"
    path.write_text("- just\n- a list\n", encoding="utf-8")
    with pytest.raises(ValueError, match="mapping"):
        load_policies(path)
