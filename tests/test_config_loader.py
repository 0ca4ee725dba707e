"""Tests for config/loader.py and config/settings.py."""

from pathlib import Path

import pytest
from phaseline.config.loader import PipelineDefinition, get_pipeline_path, load_pipeline
from phaseline.config.settings import DEFAULT_PHASES, Settings, get_settings
from phaseline.core.errors import ConfigurationError


class TestSettings:
    """Tests for environment-driven settings."""

    def test_defaults(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        settings = Settings()

        assert settings.phases == DEFAULT_PHASES
        assert settings.log_level == "INFO"
        assert settings.checkpoint_path is None

    def test_env_override(self, tmp_path, monkeypatch):
        """Test PHASELINE_ variables override defaults."""
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("PHASELINE_PHASES", '["init", "run"]')
        monkeypatch.setenv("PHASELINE_CHECKPOINT_PATH", "state.json")

        settings = Settings()

        assert settings.phases == ["init", "run"]
        assert settings.checkpoint_path == "state.json"

    def test_get_settings_cached(self):
        get_settings.cache_clear()
        try:
            assert get_settings() is get_settings()
        finally:
            get_settings.cache_clear()


class TestGetPipelinePath:
    """Tests for pipeline file discovery."""

    def test_explicit_path(self, tmp_path):
        path = tmp_path / "pipeline.yaml"
        path.write_text("phases: [a]\n")

        assert get_pipeline_path(path) == path

    def test_explicit_missing(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            get_pipeline_path(tmp_path / "missing.yaml")

    def test_project_file(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        project = tmp_path / ".phaseline"
        project.mkdir()
        (project / "pipeline.yaml").write_text("phases: [a]\n")

        assert get_pipeline_path() == Path.cwd() / ".phaseline" / "pipeline.yaml"

    def test_nothing_found(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setattr(Path, "home", lambda: tmp_path / "home")

        assert get_pipeline_path() is None


class TestPipelineDefinition:
    """Tests for PipelineDefinition validation."""

    def test_full_document(self):
        definition = PipelineDefinition.from_dict(
            {
                "phases": ["boot", "execute"],
                "state": {"count": 0},
                "handlers": {"boot": ["units.py:boot"], "execute": "units.py"},
            }
        )

        assert definition.phases == ["boot", "execute"]
        assert definition.state == {"count": 0}
        assert definition.handlers == {"boot": ["units.py:boot"], "execute": ["units.py"]}

    def test_empty_document(self):
        definition = PipelineDefinition.from_dict({})

        assert definition.phases is None
        assert definition.handlers == {}
        assert definition.base_dir is None

    def test_handlers_for_unknown_phase(self):
        with pytest.raises(ConfigurationError, match="unknown phases"):
            PipelineDefinition.from_dict({"phases": ["boot"], "handlers": {"render": ["x.py"]}})

    @pytest.mark.parametrize(
        "data",
        [
            ["boot"],
            {"phases": "boot"},
            {"state": ["x"]},
            {"handlers": ["x.py"]},
            {"handlers": {"boot": [1]}},
        ],
    )
    def test_invalid_shapes(self, data):
        with pytest.raises(ConfigurationError):
            PipelineDefinition.from_dict(data)


class TestLoadPipeline:
    """Tests for load_pipeline."""

    def test_load_file(self, tmp_path):
        path = tmp_path / "pipeline.yaml"
        path.write_text("phases: [boot, execute]\nhandlers:\n  boot: [units.py:boot]\n")

        definition = load_pipeline(path)

        assert definition.phases == ["boot", "execute"]
        assert definition.source == path
        assert definition.base_dir == tmp_path

    def test_empty_file(self, tmp_path):
        path = tmp_path / "pipeline.yaml"
        path.write_text("")

        assert load_pipeline(path).phases is None

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "pipeline.yaml"
        path.write_text("phases: [boot\n")

        with pytest.raises(ConfigurationError, match="Invalid pipeline file"):
            load_pipeline(path)

    def test_no_file(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setattr(Path, "home", lambda: tmp_path / "home")

        assert load_pipeline() == PipelineDefinition()
