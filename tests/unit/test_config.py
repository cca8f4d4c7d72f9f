"""Tests for configuration loading."""

from __future__ import annotations

import tomllib

import pytest
from pydantic import ValidationError

from ctxsum.config import (
    CONFIG_FILE_NAME,
    CtxsumConfig,
    RunConfig,
    SummaryConfig,
    get_default_config_toml,
)
from ctxsum.errors import ConfigError, ExitCode


@pytest.fixture(autouse=True)
def isolated(tmp_path, monkeypatch):
    """Keep cwd and home config files out of the way."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.chdir(tmp_path)
    return tmp_path


class TestDefaults:
    """Test built-in defaults."""

    def test_defaults(self):
        """Loading without files gives the built-in defaults."""
        config = CtxsumConfig.load()

        assert config.version == "1.0"
        assert "node_modules/" in config.scanner.ignore
        assert config.scanner.extensions == [".ts", ".tsx", ".js", ".jsx"]
        assert config.summary.max_prompt_length == 1000
        assert config.summary.template_preference == "detailed"
        assert config.run.max_concurrency == 4
        assert config.run.optimize_prompts

    def test_default_toml_matches_defaults(self, isolated):
        """The generated config file loads back to the defaults."""
        path = isolated / "generated.toml"
        path.write_text(get_default_config_toml())

        loaded = CtxsumConfig.load(path)

        assert loaded.model_dump() == CtxsumConfig().model_dump()

    def test_default_toml_is_valid(self):
        """The default TOML parses and carries the version table."""
        data = tomllib.loads(get_default_config_toml())
        assert data["ctxsum"]["version"] == "1.0"


class TestLoad:
    """Test file resolution and merging."""

    def test_explicit_path(self, isolated):
        """An explicit file overrides defaults table by table."""
        path = isolated / "custom.toml"
        path.write_text(
            '[ctxsum]\nversion = "2.0"\n\n'
            '[summary]\nmax_prompt_length = 200\ntemplate_preference = "concise"\n\n'
            "[run]\nmax_concurrency = 2\n"
        )

        config = CtxsumConfig.load(path)

        assert config.version == "2.0"
        assert config.summary.max_prompt_length == 200
        assert config.summary.template_preference == "concise"
        assert config.run.max_concurrency == 2
        assert config.run.parallel_processing

    def test_cwd_file(self, isolated):
        """A config file in the working directory is picked up."""
        (isolated / CONFIG_FILE_NAME).write_text("[scanner]\ninclude_hidden = true\n")
        assert CtxsumConfig.load().scanner.include_hidden

    def test_custom_patterns(self, isolated):
        """Custom patterns load with their default category."""
        path = isolated / "patterns.toml"
        path.write_text('[[summary.custom_patterns]]\nname = "tests"\nmatcher = ".test."\n')

        patterns = CtxsumConfig.load(path).summary.custom_patterns

        assert [(p.name, p.matcher, p.category) for p in patterns] == [("tests", ".test.", "general")]

    def test_environment_overrides_file(self, isolated, monkeypatch):
        """Environment variables win over file values; other file values stay."""
        path = isolated / "custom.toml"
        path.write_text("[run]\nmax_concurrency = 2\nparallel_processing = false\n")
        monkeypatch.setenv("CTXSUM_RUN__MAX_CONCURRENCY", "8")

        config = CtxsumConfig.load(path)

        assert config.run.max_concurrency == 8
        assert not config.run.parallel_processing

    def test_invalid_toml(self, isolated):
        """Malformed TOML raises a config error naming the file."""
        path = isolated / "broken.toml"
        path.write_text("[run\nmax_concurrency = ")

        with pytest.raises(ConfigError) as exc_info:
            CtxsumConfig.load(path)

        assert exc_info.value.exit_code == ExitCode.CONFIG_ERROR
        assert exc_info.value.context["path"] == str(path)


class TestValidation:
    def test_concurrency_must_be_positive(self):
        """Concurrency below one is rejected."""
        with pytest.raises(ValidationError):
            RunConfig(max_concurrency=0)

    def test_unknown_template_preference(self):
        """Only the known template preferences are accepted."""
        with pytest.raises(ValidationError):
            SummaryConfig(template_preference="verbose")
