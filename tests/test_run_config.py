"""
Tests for run_config.py: defaults, environment layering, CLI overrides
and validation.
"""

import argparse

import pytest

from wikiharvest.run_config import HarvestRunConfig


def _namespace(**kwargs):
    base = dict(
        base_url=None, index_path=None, section_label=None, raw_suffix=None,
        output=None, concurrency=None, on_error=None, max_retries=None, timeout=None,
    )
    base.update(kwargs)
    return argparse.Namespace(**base)


class TestDefaults:

    def test_defaults(self):
        cfg = HarvestRunConfig()
        assert cfg.index_url == "https://wiki.facepunch.com/gmod/"
        assert cfg.section_label == "Developer Reference"
        assert cfg.raw_suffix == "?format=text"
        assert cfg.output_path == "dist/functions.json"
        assert cfg.concurrency == 4
        assert cfg.max_retries == 100
        assert cfg.on_error == "fail"

    def test_defaults_are_valid(self):
        assert HarvestRunConfig().validate().concurrency == 4


class TestFromEnv:

    def test_typed_values(self):
        cfg = HarvestRunConfig.from_env({
            "WIKIHARVEST_CONCURRENCY": "8",
            "WIKIHARVEST_RETRY_BASE_DELAY": "0.5",
            "WIKIHARVEST_OUTPUT_PATH": "out/api.json",
            "WIKIHARVEST_INLINE_TAGS": "page, note",
        })
        assert cfg.concurrency == 8
        assert cfg.retry_base_delay == 0.5
        assert cfg.output_path == "out/api.json"
        assert cfg.inline_tags == ("page", "note")

    def test_empty_values_ignored(self):
        assert HarvestRunConfig.from_env({"WIKIHARVEST_CONCURRENCY": ""}).concurrency == 4

    def test_bad_number(self):
        with pytest.raises(ValueError, match="WIKIHARVEST_CONCURRENCY"):
            HarvestRunConfig.from_env({"WIKIHARVEST_CONCURRENCY": "many"})


class TestFromCliArgs:

    def test_flags_override_base(self):
        base = HarvestRunConfig(concurrency=8, output_path="env.json")
        cfg = HarvestRunConfig.from_cli_args(_namespace(concurrency=2, timeout=3.0), base=base)
        assert cfg.concurrency == 2
        assert cfg.timeout_seconds == 3.0
        assert cfg.output_path == "env.json"

    def test_output_flag(self):
        cfg = HarvestRunConfig.from_cli_args(_namespace(output="x.json"), base=HarvestRunConfig())
        assert cfg.output_path == "x.json"

    def test_env_used_when_no_base(self, monkeypatch):
        monkeypatch.setenv("WIKIHARVEST_SECTION_LABEL", "Reference")
        cfg = HarvestRunConfig.from_cli_args(_namespace())
        assert cfg.section_label == "Reference"


class TestValidate:

    @pytest.mark.parametrize("overrides", [
        {"concurrency": 0},
        {"max_retries": -1},
        {"on_error": "ignore"},
        {"base_url": "ftp://wiki.example.com"},
    ])
    def test_rejected(self, overrides):
        with pytest.raises(ValueError):
            HarvestRunConfig(**overrides).validate()
