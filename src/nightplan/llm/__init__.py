"""Generative model clients used by the plan engine."""

from nightplan.llm.http_client import HTTPModelClient, build_model_client
from nightplan.llm.interface import ModelClient, ModelClientError

__all__ = ["HTTPModelClient", "ModelClient", "ModelClientError", "build_model_client"]
