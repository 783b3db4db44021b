"""
Rules for rewriting Markdown tokens as Org markup.

The rule engine looks at one candidate token at a time.  Every decision is made
from the text that is already available; when the deciding characters have not
arrived yet the engine reports a Hold instead of guessing.  Once the end of the
text is known to be final, holds are resolved using the end of text as a
boundary, or by leaving the token as literal text.
"""

import logging
import unicodedata
from typing import ClassVar, Set

from mdorg.mdorg_scratch_buffer import MdOrgScratchBuffer
from mdorg.mdorg_types import FenceKind, FenceState, Hold, MdOrgStep, OrgMarkup, Pass, Rewrite


class MdOrgRuleEngine:
    """
    Classifies Markdown tokens and decides how to rewrite them.

    The engine holds no per-conversion state: fence state is passed in and a new
    state is handed back with every step.
    """

    _CANDIDATE_CHARS: ClassVar[Set[str]] = set("`*")
    _BLANK_CHARS: ClassVar[Set[str]] = set(" \t")

    def __init__(self, fence_min_ticks: int = 3) -> None:
        """
        Initialize the rule engine.

        Args:
            fence_min_ticks: Minimum backtick run length that opens a code fence
        """
        self._fence_min_ticks = fence_min_ticks
        self._logger = logging.getLogger("MdOrgRuleEngine")

    def fence_min_ticks(self) -> int:
        """Get the minimum backtick run length that opens a code fence."""
        return self._fence_min_ticks

    def convert(self, text: str) -> str:
        """
        Convert a complete Markdown text to Org.

        Args:
            text: The complete Markdown text

        Returns:
            The Org text
        """
        buffer = MdOrgScratchBuffer(text)
        cursor = 0
        state = FenceState()
        while cursor < len(buffer):
            step = self.classify(buffer, cursor, state, final=True)
            cursor = buffer.apply(step.outcome)
            state = step.state

        return buffer.text()

    def classify(
        self,
        text: MdOrgScratchBuffer | str,
        cursor: int,
        state: FenceState,
        final: bool = False
    ) -> MdOrgStep:
        """
        Classify the next candidate token at or after the cursor.

        Args:
            text: The available text
            cursor: Offset to start scanning from
            state: Fence state at the cursor
            final: True if no more text will ever follow

        Returns:
            The outcome for the token (text between cursor and the token is plain)
            and the fence state after it
        """
        pos = self._find_candidate(text, cursor, state)
        if pos < 0:
            return MdOrgStep(Pass(cursor, len(text)), state)

        if state.kind == FenceKind.AWAITING_FENCE_CLOSE:
            return self._classify_native_block_close(text, pos, state, final)

        ch = text[pos]
        if ch == "`":
            return self._classify_backticks(text, pos, state, final)

        if ch == "#":
            return self._classify_hashes(text, pos, state, final)

        return self._classify_stars(text, pos, state, final)

    def _find_candidate(self, text: MdOrgScratchBuffer | str, cursor: int, state: FenceState) -> int:
        """
        Find the offset of the next candidate token.

        Args:
            text: The available text
            cursor: Offset to start scanning from
            state: Current fence state

        Returns:
            Offset of the candidate, or -1 if there is none
        """
        text_len = len(text)
        pos = cursor
        if state.kind == FenceKind.IN_CODE_FENCE:
            while pos < text_len:
                if text[pos] == "`":
                    return pos

                pos += 1

            return -1

        if state.kind == FenceKind.AWAITING_FENCE_CLOSE:
            while pos < text_len:
                if text[pos] == "#" and self._at_line_start(text, pos):
                    return pos

                pos += 1

            return -1

        while pos < text_len:
            ch = text[pos]
            if ch in self._CANDIDATE_CHARS:
                return pos

            if ch == "#" and self._at_line_start(text, pos):
                return pos

            pos += 1

        return -1

    def _classify_backticks(
        self,
        text: MdOrgScratchBuffer | str,
        pos: int,
        state: FenceState,
        final: bool
    ) -> MdOrgStep:
        """Classify a run of backticks starting at pos."""
        end = pos
        text_len = len(text)
        while end < text_len and text[end] == "`":
            end += 1

        at_end = end == text_len
        if at_end and not final:
            # More backticks, or the character that decides, may still arrive
            return MdOrgStep(Hold(pos), state)

        ticks = end - pos
        if state.kind == FenceKind.IN_CODE_FENCE:
            if ticks == state.tick_count:
                self._logger.debug("Closing %d-tick code fence at %d", ticks, pos)
                return MdOrgStep(Rewrite(pos, end, OrgMarkup.FENCE_CLOSE), FenceState())

            return MdOrgStep(Pass(pos, end), state)

        line_leading = self._starts_line(text, pos)
        if at_end:
            if not line_leading and ticks <= 2:
                return MdOrgStep(Rewrite(pos, end, OrgMarkup.INLINE_CODE), state)

            return MdOrgStep(Pass(pos, end), state)

        if line_leading and ticks >= self._fence_min_ticks:
            self._logger.debug("Opening %d-tick code fence at %d", ticks, pos)
            return MdOrgStep(Rewrite(pos, end, OrgMarkup.FENCE_OPEN), FenceState.code_fence(ticks))

        if ticks <= 2:
            return MdOrgStep(Rewrite(pos, end, OrgMarkup.INLINE_CODE), state)

        return MdOrgStep(Pass(pos, end), state)

    def _classify_hashes(
        self,
        text: MdOrgScratchBuffer | str,
        pos: int,
        state: FenceState,
        final: bool
    ) -> MdOrgStep:
        """Classify a line-leading run of '#' starting at pos."""
        end = pos
        text_len = len(text)
        while end < text_len and text[end] == "#":
            end += 1

        if end == text_len:
            if final:
                return MdOrgStep(Pass(pos, end), state)

            return MdOrgStep(Hold(pos), state)

        next_ch = text[end]
        if next_ch.isspace():
            return MdOrgStep(Rewrite(pos, end, OrgMarkup.HEADING * (end - pos)), state)

        if end - pos == 1 and next_ch == "+":
            marker = OrgMarkup.NATIVE_BLOCK_OPEN
            available = text[end:end + len(marker)].lower()
            if available == marker:
                # The producer wrote Org directly; leave the whole block alone
                self._logger.debug("Native source block at %d", pos)
                return MdOrgStep(Pass(pos, end + len(marker)), FenceState.native_block())

            if len(available) < len(marker) and marker.startswith(available) and not final:
                return MdOrgStep(Hold(pos), state)

        return MdOrgStep(Pass(pos, end), state)

    def _classify_native_block_close(
        self,
        text: MdOrgScratchBuffer | str,
        pos: int,
        state: FenceState,
        final: bool
    ) -> MdOrgStep:
        """Classify a line-leading '#' while inside a native source block."""
        marker = OrgMarkup.NATIVE_BLOCK_CLOSE
        available = text[pos:pos + len(marker)].lower()
        if available == marker:
            return MdOrgStep(Pass(pos, pos + len(marker)), FenceState())

        if len(available) < len(marker) and marker.startswith(available) and not final:
            return MdOrgStep(Hold(pos), state)

        return MdOrgStep(Pass(pos, pos + 1), state)

    def _classify_stars(
        self,
        text: MdOrgScratchBuffer | str,
        pos: int,
        state: FenceState,
        final: bool
    ) -> MdOrgStep:
        """Classify a '*' or '**' starting at pos."""
        text_len = len(text)
        end = pos + 1
        if end < text_len and text[end] == "*":
            end += 1

        prev_ch = text[pos - 1] if pos > 0 else None

        if end - pos == 2:
            # Only the look-behind matters for '**'
            if prev_ch is not None and self._collapses_strong(prev_ch):
                return MdOrgStep(Rewrite(pos, end, OrgMarkup.STRONG), state)

            return MdOrgStep(Pass(pos, end), state)

        if end == text_len and not final:
            return MdOrgStep(Hold(pos), state)

        next_ch = text[end] if end < text_len else None

        if self._is_emphasis(prev_ch, next_ch):
            return MdOrgStep(Rewrite(pos, end, OrgMarkup.ITALIC), state)

        if (prev_ch is None or prev_ch == "\n") and next_ch is not None and next_ch in self._BLANK_CHARS:
            return MdOrgStep(Rewrite(pos, end, OrgMarkup.BULLET), state)

        return MdOrgStep(Pass(pos, end), state)

    def _is_emphasis(self, prev_ch: str | None, next_ch: str | None) -> bool:
        """
        Check if a single '*' between two characters delimits emphasis.

        Args:
            prev_ch: Character before the '*', None at the start of the text
            next_ch: Character after the '*', None at the end of the text

        Returns:
            True if the '*' opens or closes emphasis
        """
        next_is_boundary = next_ch is None or self._is_space_or_punct(next_ch)

        if prev_ch is None:
            return next_ch is not None and not next_is_boundary

        if not self._is_space_or_punct(prev_ch):
            # Closing: "word*" followed by a boundary
            return next_is_boundary

        # Opening: " *word".  Nothing can follow a '*' at the end of the text
        return next_ch is not None and not next_is_boundary

    def _collapses_strong(self, prev_ch: str) -> bool:
        """Check if '**' preceded by prev_ch collapses to a single '*'."""
        return prev_ch.isalnum() or prev_ch.isspace() or self._is_punct(prev_ch)

    def _is_space_or_punct(self, ch: str) -> bool:
        return ch.isspace() or self._is_punct(ch)

    def _is_punct(self, ch: str) -> bool:
        return unicodedata.category(ch)[0] in ("P", "S")

    def _at_line_start(self, text: MdOrgScratchBuffer | str, pos: int) -> bool:
        return pos == 0 or text[pos - 1] == "\n"

    def _starts_line(self, text: MdOrgScratchBuffer | str, pos: int) -> bool:
        """Check if only blanks precede pos on its line."""
        i = pos - 1
        while i >= 0 and text[i] in self._BLANK_CHARS:
            i -= 1

        return i < 0 or text[i] == "\n"


def convert_markdown_to_org(text: str, fence_min_ticks: int = 3) -> str:
    """
    Convert a complete Markdown text to Org.

    Args:
        text: The Markdown text
        fence_min_ticks: Minimum backtick run length that opens a code fence

    Returns:
        The Org text
    """
    return MdOrgRuleEngine(fence_min_ticks).convert(text)
