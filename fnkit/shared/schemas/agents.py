"""Agent manifest schemas, loaded from ``agents/<name>/index.yaml``."""

from __future__ import annotations

from pydantic import BaseModel, Field


class AgentVariable(BaseModel):
    """A key-value setting resolved per invocation and exported to the agent."""

    name: str
    description: str = ""
    default: str | None = None

    @property
    def env_name(self) -> str:
        return f"LLM_AGENT_VAR_{self.name.upper()}"


class AgentManifest(BaseModel):
    """Metadata describing an agent bundle."""

    name: str
    description: str = Field(min_length=1)
    version: str = "0.1.0"
    instructions: str = ""
    variables: list[AgentVariable] = []
    conversation_starters: list[str] = []
    documents: list[str] = []

    def get_variable(self, name: str) -> AgentVariable | None:
        for var in self.variables:
            if var.name == name:
                return var
        return None
