"""
phaseline configuration.

Provides:
- Pydantic-based settings (environment variables, .env files)
- YAML pipeline definitions (phases, seed state, handler references)
"""

from phaseline.config.loader import PipelineDefinition, get_pipeline_path, load_pipeline
from phaseline.config.settings import DEFAULT_PHASES, Settings, get_settings

__all__ = [
    "DEFAULT_PHASES",
    "Settings",
    "get_settings",
    "PipelineDefinition",
    "get_pipeline_path",
    "load_pipeline",
]
