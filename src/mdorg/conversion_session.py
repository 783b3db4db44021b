"""Streaming conversion of one producer's Markdown output to Org."""

import logging
from typing import Callable

from mdorg.mdorg_exceptions import MdOrgSessionError
from mdorg.mdorg_rule_engine import MdOrgRuleEngine
from mdorg.mdorg_scratch_buffer import MdOrgScratchBuffer
from mdorg.mdorg_types import FenceState, Hold


class ConversionSession:
    """
    Converts a stream of Markdown chunks to Org, one chunk at a time.

    Each call to feed returns only the Org text that can no longer change.  Text
    whose meaning still depends on characters that have not arrived is held back
    in the scratch buffer and reconsidered on the next call.  Output that has been
    returned is never retracted or repeated.

    A session has exactly one writer; callers must serialise feed calls.
    """

    def __init__(
        self,
        session_id: str,
        rule_engine: MdOrgRuleEngine | None = None,
        generation: int = 0,
        release_hook: Callable[["ConversionSession", str, bool], None] | None = None
    ) -> None:
        """
        Initialize the session.

        Args:
            session_id: Identity of the producer stream that owns this session
            rule_engine: Rule engine to use (a default engine if None)
            generation: Counter distinguishing sessions that reuse a session ID
            release_hook: Called once with the session, its flushed tail and whether it
                was cancelled, when the session releases its resources
        """
        self._session_id = session_id
        self._rule_engine = rule_engine or MdOrgRuleEngine()
        self._generation = generation
        self._release_hook = release_hook
        self._logger = logging.getLogger("ConversionSession")

        self._scratch = MdOrgScratchBuffer()
        self._cursor = 0
        self._fence_state = FenceState()
        self._hold_marker: int | None = None
        self._finalized = False

    @property
    def session_id(self) -> str:
        """Identity of the owning producer stream."""
        return self._session_id

    @property
    def generation(self) -> int:
        """Generation assigned when the session was created."""
        return self._generation

    @property
    def cursor(self) -> int:
        """Offset up to which output has been committed."""
        return self._cursor

    @property
    def hold_marker(self) -> int | None:
        """Start of the undecided token, or None if nothing is held."""
        return self._hold_marker

    @property
    def fence_state(self) -> FenceState:
        """Fence state at the cursor."""
        return self._fence_state

    def is_finalized(self) -> bool:
        """Check if the session has released its resources."""
        return self._finalized

    def pending_text(self) -> str:
        """Get the text received but not yet committed."""
        return self._scratch[self._cursor:]

    def feed(self, chunk: str) -> str:
        """
        Add a chunk of Markdown and return the newly committed Org text.

        An empty result is normal: it means everything received so far is still
        undecided.

        Args:
            chunk: The next chunk of producer output

        Returns:
            Org text committed by this call

        Raises:
            MdOrgSessionError: If the session has already been finalized
        """
        if self._finalized:
            raise MdOrgSessionError(
                f"Session '{self._session_id}' has already been finalized",
                {'session_id': self._session_id, 'generation': self._generation}
            )

        self._scratch.append(chunk)
        return self._advance(final=False)

    def finalize(self) -> str:
        """
        Flush everything still held and release the session.

        Tokens that were waiting for more input are decided using the end of the
        stream as a boundary; anything that still cannot be decided is emitted
        exactly as it was received.

        Returns:
            The remaining Org text, or an empty string if already finalized
        """
        return self._close(cancelled=False)

    def cancel(self) -> str:
        """
        Handle cancellation of the producer stream.

        The held text is flushed exactly as finalize would flush it.

        Returns:
            The remaining Org text, or an empty string if already finalized
        """
        if not self._finalized:
            self._logger.debug("Session '%s' cancelled with %d pending characters",
                               self._session_id, len(self._scratch) - self._cursor)

        return self._close(cancelled=True)

    def _close(self, cancelled: bool) -> str:
        if self._finalized:
            self._logger.debug("Session '%s' already finalized", self._session_id)
            return ""

        tail = self._advance(final=True)
        if self._cursor < len(self._scratch):
            # Nothing more will arrive to resolve this, so keep it as-is
            tail += self._scratch[self._cursor:]
            self._cursor = len(self._scratch)

        self._release(tail, cancelled)
        return tail

    def _advance(self, final: bool) -> str:
        """
        Commit as much of the scratch buffer as can be decided.

        Args:
            final: True if no more input will follow

        Returns:
            The text committed by this call
        """
        start = self._cursor
        self._hold_marker = None

        while self._cursor < len(self._scratch):
            step = self._rule_engine.classify(self._scratch, self._cursor, self._fence_state, final)
            outcome = step.outcome
            if isinstance(outcome, Hold):
                if final:
                    break

                self._cursor = outcome.start
                self._hold_marker = outcome.start
                self._logger.debug("Session '%s' holding from %d", self._session_id, outcome.start)
                break

            self._cursor = self._scratch.apply(outcome)
            self._fence_state = step.state

        return self._scratch[start:self._cursor]

    def _release(self, tail: str, cancelled: bool) -> None:
        """Release the scratch buffer and notify the owner, exactly once."""
        self._finalized = True
        self._hold_marker = None
        self._scratch.clear()
        self._cursor = 0
        self._logger.debug("Session '%s' released", self._session_id)

        hook = self._release_hook
        self._release_hook = None
        if hook is not None:
            hook(self, tail, cancelled)
