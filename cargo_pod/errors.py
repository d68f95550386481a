"""Error taxonomy shared by the framework build pipeline."""

from __future__ import annotations

import contextlib
import typing as typ

if typ.TYPE_CHECKING:
    from .toolchain import ToolOutcome

__all__ = [
    "BundleError",
    "ConfigurationError",
    "ContentConflictError",
    "PodError",
    "ToolError",
    "filesystem_step",
]


class PodError(RuntimeError):
    """Raised when the build pipeline cannot continue."""


class ConfigurationError(PodError):
    """Raised for unsupported targets, missing libraries or bad overrides."""


class ToolError(PodError):
    """Raised when an external tool is missing or reports failure.

    Parameters
    ----------
    stage : str
        Pipeline stage that invoked the tool (for example ``"compile"``).
    subject : str
        Target, variant or library the invocation was working on.
    outcome : ToolOutcome
        Typed result of the failed invocation.
    """

    def __init__(self, stage: str, subject: str, outcome: ToolOutcome) -> None:
        self.stage = stage
        self.subject = subject
        self.outcome = outcome
        super().__init__(f"[{stage}] {subject}: {outcome.describe()}")


class BundleError(PodError):
    """Raised when a filesystem step of bundle construction fails."""

    def __init__(self, stage: str, subject: str, detail: str) -> None:
        self.stage = stage
        self.subject = subject
        super().__init__(f"[{stage}] {subject}: {detail}")


class ContentConflictError(BundleError):
    """Raised when merged sources disagree on the bytes of a shared path."""


@contextlib.contextmanager
def filesystem_step(stage: str, subject: str) -> typ.Iterator[None]:
    """Translate :class:`OSError` raised inside the block into ``BundleError``.

    Examples
    --------
    >>> with filesystem_step("merge", "ios-simulator"):  # doctest: +SKIP
    ...     Path("missing").rename("other")
    Traceback (most recent call last):
    BundleError: [merge] ios-simulator: ...
    """

    try:
        yield
    except OSError as exc:
        raise BundleError(stage, subject, str(exc)) from exc
