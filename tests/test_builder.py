"""Tests for assembling an orchestrator from a pipeline file."""

import pytest
from phaseline.config.loader import PipelineDefinition
from phaseline.config.settings import Settings
from phaseline.core.errors import RegistrationError
from phaseline.orchestration import BackupEffectCoordinator, build_orchestrator

UNITS = '''
def boot(phase, state):
    return {"booted": True}


def handle(phase, state):
    state["count"] += 1
'''


@pytest.fixture
def project(tmp_path):
    """Pipeline directory with a handler file next to the YAML."""
    (tmp_path / "units.py").write_text(UNITS)
    pipeline = tmp_path / "pipeline.yaml"
    pipeline.write_text(
        "phases: [boot, execute, persist]\n"
        "state:\n"
        "  count: 0\n"
        "handlers:\n"
        "  boot: [units.py:boot]\n"
        "  execute: [units.py, units.py]\n"
    )
    return tmp_path


@pytest.fixture
def settings(tmp_path):
    return Settings(workspace_root=str(tmp_path), phases=["only"])


class TestBuildOrchestrator:
    """Tests for build_orchestrator."""

    def test_builds_from_pipeline_file(self, project, settings):
        """Test phases, seed state and handlers come from the YAML."""
        orchestrator = build_orchestrator(settings, pipeline_path=project / "pipeline.yaml")

        assert orchestrator.phases == ["boot", "execute", "persist"]
        assert orchestrator.handlers("execute") == ["units.py", "units.py"]
        assert orchestrator.run() == {"count": 2, "booted": True}

    def test_phases_fall_back_to_settings(self, settings):
        orchestrator = build_orchestrator(settings, pipeline=PipelineDefinition())

        assert orchestrator.phases == ["only"]

    def test_filesystem_effects_under_workspace(self, project, settings):
        orchestrator = build_orchestrator(settings, pipeline=PipelineDefinition())

        effects = orchestrator._effects
        assert isinstance(effects, BackupEffectCoordinator)
        assert effects.workspace_root == project.resolve()

    def test_unresolvable_reference(self, tmp_path, settings):
        """Test a missing handler file is refused at build time."""
        pipeline = PipelineDefinition.from_dict(
            {"phases": ["boot"], "handlers": {"boot": ["missing.py"]}},
            source=tmp_path / "pipeline.yaml",
        )

        with pytest.raises(RegistrationError):
            build_orchestrator(settings, pipeline=pipeline)

    def test_handler_paths_from_settings(self, tmp_path):
        """Test relative references are also searched in handler_paths."""
        units = tmp_path / "units"
        units.mkdir()
        (units / "step.py").write_text("def handle(phase, state):\n    return {'ran': phase}\n")
        settings = Settings(workspace_root=str(tmp_path), handler_paths=[str(units)])
        pipeline = PipelineDefinition.from_dict({"phases": ["boot"], "handlers": {"boot": ["step.py"]}})

        orchestrator = build_orchestrator(settings, pipeline=pipeline)

        assert orchestrator.run() == {"ran": "boot"}

    def test_checkpoint_resume(self, project, settings):
        """Test two builds sharing a checkpoint continue where the first stopped."""
        checkpoint = project / "checkpoint.json"
        first = build_orchestrator(settings, pipeline_path=project / "pipeline.yaml", checkpoint_path=checkpoint)
        first.run("boot")

        second = build_orchestrator(settings, pipeline_path=project / "pipeline.yaml", checkpoint_path=checkpoint)

        assert second.introspect("name") == "boot"
        assert second.run() == {"count": 2, "booted": True}
