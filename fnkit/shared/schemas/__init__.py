"""Pydantic schemas for declarations, agents and results."""

from fnkit.shared.schemas.agents import AgentManifest, AgentVariable
from fnkit.shared.schemas.results import ArtifactResult, BuildReport, CheckIssue, InvocationResult
from fnkit.shared.schemas.tools import Declaration, ParameterSpec, SchemaDocument

__all__ = [
    "AgentManifest",
    "AgentVariable",
    "ArtifactResult",
    "BuildReport",
    "CheckIssue",
    "Declaration",
    "InvocationResult",
    "ParameterSpec",
    "SchemaDocument",
]
