"""
Error taxonomy for WorkNode operations.

Every error names the offending file or step so the CLI can print it verbatim.
Filesystem failures are not wrapped: OSError propagates unchanged.
"""

from pathlib import Path


def format_key(key: tuple[int, str]) -> str:
    """Render a (phase, step) identity key as "phase.step"."""
    phase, step = key
    return f"{phase}.{step}"


class WorkTreeError(Exception):
    """Base class for all WorkNode errors."""
    pass


class ConfigError(WorkTreeError):
    """worktree.yaml is unreadable or does not match its schema."""
    pass


class LayoutError(WorkTreeError):
    """A directory does not have the WorkNode shape.

    Carries every violated requirement, not just the first one found.
    """

    def __init__(self, root: Path, failures: list[str]):
        self.root = root
        self.failures = list(failures)
        details = "\n- ".join(self.failures)
        super().__init__(f"WorkNode layout validation failed for {root}:\n- {details}")


class ParseError(WorkTreeError):
    """PLAN or STATE text could not be parsed."""

    def __init__(self, message: str, path: Path | None = None, line: int | None = None):
        self.reason = message
        self.path = path
        self.line = line
        super().__init__(self._render())

    def _render(self) -> str:
        location = ""
        if self.path is not None:
            location = f"{self.path}"
            if self.line is not None:
                location += f":{self.line}"
            location += ": "
        elif self.line is not None:
            location = f"line {self.line}: "
        return f"{location}{self.reason}"

    def with_path(self, path: Path) -> "ParseError":
        """Attach the source file to an error raised by a pure-text parser."""
        self.path = path
        self.args = (self._render(),)
        return self


class StateParseError(ParseError):
    """Malformed STATE table row (bad cell count or phase)."""
    pass


class InvalidStatusError(ParseError):
    """A STATE row carries a status outside the closed set."""

    def __init__(self, value: str, path: Path | None = None, line: int | None = None):
        self.value = value
        super().__init__(f"invalid status '{value}'", path=path, line=line)


class ConsistencyError(WorkTreeError):
    """PLAN and STATE disagree."""
    pass


class DuplicateStepError(ConsistencyError):
    def __init__(self, key: tuple[int, str], source: str, path: Path | None = None):
        self.key = key
        self.source = source
        self.path = path
        super().__init__(self._render())

    def _render(self) -> str:
        where = self.source if self.path is None else f"{self.source} ({self.path})"
        return f"step {format_key(self.key)} is declared more than once in {where}"

    def with_path(self, path: Path) -> "DuplicateStepError":
        self.path = path
        self.args = (self._render(),)
        return self


class MissingStateEntryError(ConsistencyError):
    def __init__(self, key: tuple[int, str], label: str):
        self.key = key
        self.label = label
        super().__init__(
            f"step {format_key(key)} ('{label}') is declared in the plan but has no state entry"
        )


class UnexpectedStateEntryError(ConsistencyError):
    def __init__(self, key: tuple[int, str], label: str):
        self.key = key
        self.label = label
        super().__init__(
            f"state entry {format_key(key)} ('{label}') has no matching plan step"
        )


class LabelMismatchError(ConsistencyError):
    def __init__(self, key: tuple[int, str], plan_label: str, state_label: str):
        self.key = key
        self.plan_label = plan_label
        self.state_label = state_label
        super().__init__(
            f"label mismatch for step {format_key(key)}: "
            f"plan says '{plan_label}', state says '{state_label}'"
        )


class NotFoundError(WorkTreeError):
    """A mutation targeted something that does not exist."""
    pass


class StateEntryNotFoundError(NotFoundError):
    def __init__(self, key: tuple[int, str]):
        self.key = key
        super().__init__(f"state entry {format_key(key)} not found")


class TransitionError(WorkTreeError):
    """A status change is not allowed from the step's current status."""
    pass


class AmbiguousProgressError(WorkTreeError):
    """More than one step is in progress at the same time."""

    def __init__(self, keys: list[tuple[int, str]]):
        self.keys = list(keys)
        listed = ", ".join(format_key(k) for k in self.keys)
        super().__init__(f"more than one step is in progress: {listed}")
