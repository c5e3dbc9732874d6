"""Exception taxonomy for building and invoking tools.

Build errors are scoped to one artifact (a tool file or an agent) and are
collected into a build report. Validation and resolution errors abort a single
invocation before any child process is spawned. Execution errors carry the
child's exit status and stderr.
"""

from __future__ import annotations


class FnkitError(Exception):
    """Base class for every error raised by fnkit."""


# ---------------------------------------------------------------------------
# Build time
# ---------------------------------------------------------------------------


class BuildError(FnkitError):
    """A declaration could not be built from its source file."""

    def __init__(self, message: str, *, source: str | None = None, line: int | None = None):
        super().__init__(message)
        self.message = message
        self.source = source
        self.line = line

    def with_source(self, source: str) -> BuildError:
        """Attach the originating file, keeping any source already recorded."""
        if self.source is None:
            self.source = source
        return self

    def __str__(self) -> str:
        where = ""
        if self.source:
            where = f" ({self.source}" + (f":{self.line}" if self.line else "") + ")"
        elif self.line:
            where = f" (line {self.line})"
        return f"{self.message}{where}"


class MalformedTagError(BuildError):
    """A recognized comment tag whose arguments cannot be split."""

    def __init__(self, tag: str, raw: str, *, line: int | None = None, reason: str = ""):
        detail = f": {reason}" if reason else ""
        super().__init__(f"malformed @{tag} tag {raw!r}{detail}", line=line)
        self.tag = tag
        self.raw = raw


class MissingDescriptionError(BuildError):
    def __init__(self, name: str, **kwargs):
        super().__init__(f"'{name}' has no @describe tag", **kwargs)
        self.name = name


class DuplicateDescriptionError(BuildError):
    def __init__(self, name: str, **kwargs):
        super().__init__(f"'{name}' has more than one @describe tag", **kwargs)
        self.name = name


class DuplicateParameterError(BuildError):
    def __init__(self, name: str, parameter: str, **kwargs):
        super().__init__(f"'{name}' declares parameter '{parameter}' more than once", **kwargs)
        self.name = name
        self.parameter = parameter


class DuplicateDeclarationError(BuildError):
    def __init__(self, name: str, **kwargs):
        super().__init__(f"declaration '{name}' is defined more than once", **kwargs)
        self.name = name


class UnsupportedLanguageError(BuildError):
    def __init__(self, path: str):
        super().__init__(f"no comment dialect for '{path}'", source=path)


# ---------------------------------------------------------------------------
# Call time
# ---------------------------------------------------------------------------


class ValidationError(FnkitError):
    """Arguments rejected before a child process is spawned."""


class MissingRequiredParameter(ValidationError):
    """Every required parameter absent from one call, reported together.

    Mistyped array elements found in the same call ride along in
    ``mismatches`` so one error describes everything wrong with it.
    """

    def __init__(
        self,
        declaration: str,
        names: list[str],
        mismatches: list[tuple[str, str, object]] | None = None,
    ):
        self.declaration = declaration
        self.names = list(names)
        self.mismatches = list(mismatches or [])
        message = f"'{declaration}' is missing required parameter(s): {', '.join(self.names)}"
        if self.mismatches:
            message += f"; mistyped arguments: {_mismatch_details(self.mismatches)}"
        super().__init__(message)


class TypeMismatchError(ValidationError):
    """Array elements that do not match the declared element kind."""

    def __init__(self, declaration: str, mismatches: list[tuple[str, str, object]]):
        self.declaration = declaration
        self.mismatches = list(mismatches)
        super().__init__(
            f"'{declaration}' received mistyped arguments: {_mismatch_details(self.mismatches)}"
        )


def _mismatch_details(mismatches: list[tuple[str, str, object]]) -> str:
    return "; ".join(
        f"'{param}' expects {expected} items, got {value!r}"
        for param, expected, value in mismatches
    )


class MissingVariableError(ValidationError):
    def __init__(self, agent: str, names: list[str]):
        self.agent = agent
        self.names = list(names)
        super().__init__(
            f"agent '{agent}' has no value for variable(s): {', '.join(self.names)}"
        )


class NotFoundError(FnkitError):
    """An unknown tool, agent, action or entry point."""

    def __init__(self, kind: str, name: str, detail: str = ""):
        self.kind = kind
        self.name = name
        suffix = f": {detail}" if detail else ""
        super().__init__(f"{kind} '{name}' not found{suffix}")


class ExecutionError(FnkitError):
    """The child process exited non-zero."""

    def __init__(self, name: str, exit_code: int, stderr: str = ""):
        self.name = name
        self.exit_code = exit_code
        self.stderr = stderr
        message = f"'{name}' exited with status {exit_code}"
        if stderr.strip():
            message += f": {stderr.strip()}"
        super().__init__(message)
