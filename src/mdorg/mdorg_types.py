"""Shared types for Markdown to Org conversion."""

from dataclasses import dataclass
from enum import Enum, auto
from typing import ClassVar


class OrgMarkup:
    """Org tokens emitted by the converter."""
    FENCE_OPEN: ClassVar[str] = "#+begin_src "
    FENCE_CLOSE: ClassVar[str] = "#+end_src"
    INLINE_CODE: ClassVar[str] = "="
    HEADING: ClassVar[str] = "*"
    STRONG: ClassVar[str] = "*"
    ITALIC: ClassVar[str] = "/"
    BULLET: ClassVar[str] = "-"

    # Native Org block markers, matched case-insensitively after a line-leading '#'
    NATIVE_BLOCK_OPEN: ClassVar[str] = "+begin_src"
    NATIVE_BLOCK_CLOSE: ClassVar[str] = "#+end_src"


class FenceKind(Enum):
    """Kind of block the converter is currently inside."""
    NONE = auto()
    IN_CODE_FENCE = auto()          # Inside a Markdown backtick fence
    AWAITING_FENCE_CLOSE = auto()   # Inside a native #+begin_src block


@dataclass(frozen=True)
class FenceState:
    """
    Fence state carried between rule engine invocations.

    Attributes:
        kind: The kind of block currently open
        tick_count: Number of backticks that opened a Markdown fence, 0 otherwise
    """
    kind: FenceKind = FenceKind.NONE
    tick_count: int = 0

    @classmethod
    def code_fence(cls, tick_count: int) -> "FenceState":
        """Create the state for an open Markdown fence."""
        return cls(FenceKind.IN_CODE_FENCE, tick_count)

    @classmethod
    def native_block(cls) -> "FenceState":
        """Create the state for an open native Org source block."""
        return cls(FenceKind.AWAITING_FENCE_CLOSE, 0)

    def is_open(self) -> bool:
        """Check if any kind of block is open."""
        return self.kind != FenceKind.NONE


@dataclass(frozen=True)
class Rewrite:
    """Replace text[start:end] with replacement."""
    start: int
    end: int
    replacement: str


@dataclass(frozen=True)
class Pass:
    """Commit text[start:end] unchanged."""
    start: int
    end: int


@dataclass(frozen=True)
class Hold:
    """Not enough input yet: text from start onwards must be retained."""
    start: int


MdOrgOutcome = Rewrite | Pass | Hold


@dataclass(frozen=True)
class MdOrgStep:
    """Result of classifying one candidate token."""
    outcome: MdOrgOutcome
    state: FenceState
