"""
Errors — failure taxonomy for the identifier generator.

Every failure the pipeline can raise is an ``AddrlibError`` tagged with an
``ErrorKind`` (what went wrong) and, once it has crossed a phase boundary,
a ``Phase`` (where it went wrong).  Callers add human-readable context with
``error_context``; each layer becomes a new exception chained to the one
below it, so ``error_chain`` can print the whole story outermost-first while
tests still inspect ``kind`` on any layer.
"""
from __future__ import annotations

from contextlib import contextmanager
from enum import Enum
from pathlib import Path
from typing import Iterator, List, Optional


# ── Enums ────────────────────────────────────────────────────────────────────

class ErrorKind(str, Enum):
    """What category of failure an error belongs to."""

    IO = "IO"
    PARSE = "PARSE"
    CONFIGURATION = "CONFIGURATION"
    CONFLICT = "CONFLICT"
    INTERNAL = "INTERNAL"
    RANGE = "RANGE"


class Phase(str, Enum):
    """Pipeline phase in which an error surfaced."""

    DISCOVER_OFFSETS = "DISCOVER_OFFSETS"
    PARSE_DIFFS = "PARSE_DIFFS"
    ADD_EDGES = "ADD_EDGES"
    PARSE_BINS = "PARSE_BINS"
    SEED = "SEED"
    ASSIGN = "ASSIGN"
    WRITE_BINS = "WRITE_BINS"


# ── Exception hierarchy ──────────────────────────────────────────────────────

class AddrlibError(Exception):
    """Base class for every fatal pipeline error."""

    default_kind: ErrorKind = ErrorKind.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        kind: Optional[ErrorKind] = None,
        phase: Optional[Phase] = None,
    ):
        super().__init__(message)
        self.message = message
        self.kind = kind if kind is not None else self.default_kind
        self.phase = phase

    @property
    def root(self) -> BaseException:
        """Innermost cause of this error."""
        exc: BaseException = self
        while exc.__cause__ is not None:
            exc = exc.__cause__
        return exc


class InputIOError(AddrlibError):
    """A file or directory could not be read or listed."""

    default_kind = ErrorKind.IO


class ParseError(AddrlibError):
    """Input text or file names did not match the expected format."""

    default_kind = ErrorKind.PARSE


class BinFormatError(ParseError):
    """An address bin is truncated or holds out-of-range values."""


class InconsistentInputError(AddrlibError):
    """Two inputs disagree about which versions exist."""

    default_kind = ErrorKind.CONFIGURATION


class IdentifierConflictError(AddrlibError):
    """A seed identifier collides with a different, already-assigned one."""

    default_kind = ErrorKind.CONFLICT

    def __init__(self, message: str, *, version, offset, seed, existing):
        super().__init__(message)
        self.version = version
        self.offset = offset
        self.seed = seed
        self.existing = existing


class OutputExistsError(AddrlibError):
    """Refused to overwrite an existing output file."""

    default_kind = ErrorKind.CONFLICT

    def __init__(self, path: Path):
        super().__init__(f"can not write to file because it already exists: {path}")
        self.path = path


class InternalConsistencyError(AddrlibError):
    """A graph invariant was broken; this is a defect, not bad input."""

    default_kind = ErrorKind.INTERNAL


class IdentifierRangeError(AddrlibError, ValueError):
    """An identifier fell outside the valid range or the space ran out."""

    default_kind = ErrorKind.RANGE


class UnresolvedNodeError(LookupError):
    """A node was resolved before identifier assignment completed."""


# ── Context chaining ─────────────────────────────────────────────────────────

@contextmanager
def error_context(message: str, phase: Optional[Phase] = None) -> Iterator[None]:
    """
    Wrap pipeline errors raised inside the block with *message*.

    ``AddrlibError`` keeps its kind; ``OSError`` becomes an ``IO`` error and
    undecodable text becomes a ``PARSE`` error.
    The original exception is attached as ``__cause__``.
    """
    try:
        yield
    except AddrlibError as exc:
        raise AddrlibError(
            message,
            kind=exc.kind,
            phase=phase if phase is not None else exc.phase,
        ) from exc
    except OSError as exc:
        raise InputIOError(message, phase=phase) from exc
    except UnicodeDecodeError as exc:
        raise ParseError(message, phase=phase) from exc


def error_chain(exc: BaseException) -> List[str]:
    """Messages from *exc* down to its root cause, outermost first."""
    chain: List[str] = []
    current: Optional[BaseException] = exc
    while current is not None:
        chain.append(str(current) or type(current).__name__)
        current = current.__cause__
    return chain


def format_error_chain(exc: BaseException) -> str:
    """Render *exc* and its causes as an indented, human-readable block."""
    first, *causes = error_chain(exc)
    lines = [f"error: {first}"]
    lines.extend(f"  caused by: {cause}" for cause in causes)
    return "\n".join(lines)
