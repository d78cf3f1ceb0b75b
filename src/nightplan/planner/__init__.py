"""Plan generation pipeline: context, sanity gate, prompt, model call, validation."""

from nightplan.planner.engine import EngineConfig, PlanGenerationEngine, build_plan_engine

__all__ = ["EngineConfig", "PlanGenerationEngine", "build_plan_engine"]
