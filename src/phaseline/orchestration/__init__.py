"""Orchestration package: ordered phases with per-phase commit and rollback."""

from phaseline.orchestration.builder import build_orchestrator
from phaseline.orchestration.checkpoint import Checkpoint, JsonCheckpointStore
from phaseline.orchestration.context import ExecutionContext, bind
from phaseline.orchestration.effects import (
    BackupEffectCoordinator,
    EffectCoordinator,
    NullEffectCoordinator,
)
from phaseline.orchestration.engine import PhaseOrchestrator
from phaseline.orchestration.introspection import IntrospectionToken, Introspector
from phaseline.orchestration.loader import HandlerLoader, HandlerReference
from phaseline.orchestration.phases import HandlerSpec, Phase, PhaseRegistry
from phaseline.orchestration.results import ReportCollector, RunReport
from phaseline.orchestration.state import SnapshotLedger, StateStore

__all__ = [
    "BackupEffectCoordinator",
    "Checkpoint",
    "EffectCoordinator",
    "ExecutionContext",
    "HandlerLoader",
    "HandlerReference",
    "HandlerSpec",
    "IntrospectionToken",
    "Introspector",
    "JsonCheckpointStore",
    "NullEffectCoordinator",
    "Phase",
    "PhaseOrchestrator",
    "PhaseRegistry",
    "ReportCollector",
    "RunReport",
    "SnapshotLedger",
    "StateStore",
    "bind",
    "build_orchestrator",
]
