"""Build and invocation result schemas."""

from __future__ import annotations

from pydantic import BaseModel


class ArtifactResult(BaseModel):
    """Outcome of building one tool file or one agent."""

    kind: str  # "tool" or "agent"
    name: str
    success: bool
    source: str | None = None
    declarations: list[str] = []
    error: str | None = None
    error_type: str | None = None


class BuildReport(BaseModel):
    """Succeeded/failed summary for one build run."""

    artifacts: list[ArtifactResult] = []

    @property
    def succeeded(self) -> list[ArtifactResult]:
        return [a for a in self.artifacts if a.success]

    @property
    def failed(self) -> list[ArtifactResult]:
        return [a for a in self.artifacts if not a.success]

    @property
    def all_failed(self) -> bool:
        return bool(self.artifacts) and not self.succeeded

    def merge(self, other: BuildReport) -> BuildReport:
        return BuildReport(artifacts=[*self.artifacts, *other.artifacts])


class InvocationResult(BaseModel):
    """Result from one successful invocation."""

    name: str
    output: str
    exit_code: int = 0
    stderr: str = ""


class CheckIssue(BaseModel):
    """A missing environment binding or binary reported by ``check``."""

    kind: str  # "tool" or "agent"
    owner: str
    item: str
    message: str
