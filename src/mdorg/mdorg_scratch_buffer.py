"""Growable, spliceable text buffer used while converting."""

from typing import List, overload

from mdorg.mdorg_exceptions import MdOrgError
from mdorg.mdorg_types import MdOrgOutcome, Pass, Rewrite


class MdOrgScratchBuffer:
    """
    Character buffer supporting append and in-place splicing.

    Edits are only ever applied at or after the commit cursor, so offsets into the
    committed prefix stay stable for the lifetime of the buffer.
    """

    def __init__(self, text: str = "") -> None:
        """
        Initialize the buffer.

        Args:
            text: Initial buffer content
        """
        self._chars: List[str] = list(text)

    def __len__(self) -> int:
        return len(self._chars)

    @overload
    def __getitem__(self, index: int) -> str: ...

    @overload
    def __getitem__(self, index: slice) -> str: ...

    def __getitem__(self, index: int | slice) -> str:
        if isinstance(index, slice):
            return "".join(self._chars[index])

        return self._chars[index]

    def append(self, text: str) -> None:
        """
        Append text to the end of the buffer.

        Args:
            text: Text to append
        """
        self._chars.extend(text)

    def replace(self, start: int, end: int, replacement: str) -> None:
        """
        Replace the characters between start and end.

        Args:
            start: Start offset (inclusive)
            end: End offset (exclusive)
            replacement: Text to insert in place of the removed characters
        """
        self._chars[start:end] = replacement

    def apply(self, outcome: MdOrgOutcome) -> int:
        """
        Apply a committing outcome and return the new cursor position.

        Args:
            outcome: A Rewrite or Pass outcome from the rule engine

        Returns:
            Offset just after the committed text

        Raises:
            MdOrgError: If the outcome is a Hold, which commits nothing
        """
        if isinstance(outcome, Rewrite):
            self.replace(outcome.start, outcome.end, outcome.replacement)
            return outcome.start + len(outcome.replacement)

        if isinstance(outcome, Pass):
            return outcome.end

        raise MdOrgError("Only Rewrite and Pass outcomes can be applied", {'outcome': repr(outcome)})

    def text(self) -> str:
        """Get the whole buffer content."""
        return "".join(self._chars)

    def clear(self) -> None:
        """Release the buffer content."""
        self._chars = []
