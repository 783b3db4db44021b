"""Lifecycle management for concurrent conversion sessions."""

import logging
from enum import Enum, auto
from typing import Any, Callable, Dict, List, Set

from mdorg.conversion_session import ConversionSession
from mdorg.mdorg_exceptions import MdOrgSessionError
from mdorg.mdorg_rule_engine import MdOrgRuleEngine
from mdorg.mdorg_settings import MdOrgSettings


class MdOrgSessionEvent(Enum):
    """Events that can be emitted by the MdOrgSessionManager class."""
    SESSION_CREATED = auto()    # When a session is created for a producer stream
    SESSION_FINALIZED = auto()  # When a producer completed and its session was flushed
    SESSION_CANCELLED = auto()  # When a producer was cancelled and its session was flushed


class MdOrgSessionManager:
    """
    Owns the conversion sessions for all in-flight producer streams.

    Every session registers a cleanup hook keyed by its session ID.  Completion and
    cancellation signals from producers are dispatched through these hooks, so a
    duplicate signal, or one addressed to a session that no longer exists, is
    simply ignored.
    """

    def __init__(self, settings: MdOrgSettings | None = None) -> None:
        """
        Initialize the session manager.

        Args:
            settings: Converter settings (defaults if None)
        """
        self._settings = settings or MdOrgSettings.create_default()
        self._logger = logging.getLogger("MdOrgSessionManager")
        self._rule_engine = MdOrgRuleEngine(self._settings.fence_min_ticks)
        self._sessions: Dict[str, ConversionSession] = {}
        self._cleanup_hooks: Dict[str, Callable[[bool, int | None], str | None]] = {}
        self._next_generation = 1

        # Callbacks for events
        self._callbacks: Dict[MdOrgSessionEvent, Set[Callable]] = {
            event: set() for event in MdOrgSessionEvent
        }

    def register_callback(self, event: MdOrgSessionEvent, callback: Callable) -> None:
        """
        Register a callback for a specific event.

        Args:
            event: The event to register for
            callback: The callback function to call when the event occurs
        """
        self._callbacks[event].add(callback)

    def unregister_callback(self, event: MdOrgSessionEvent, callback: Callable) -> None:
        """
        Unregister a callback for a specific event.

        Args:
            event: The event to unregister from
            callback: The callback function to remove
        """
        if callback in self._callbacks[event]:
            self._callbacks[event].remove(callback)

    def _trigger_event(self, event: MdOrgSessionEvent, *args: Any) -> None:
        for callback in list(self._callbacks[event]):
            try:
                callback(*args)

            except Exception:
                self._logger.exception("Error in callback for %s", event)

    def create(self, session_id: str) -> ConversionSession:
        """
        Create a session for a new producer stream.

        Args:
            session_id: Identity of the producer stream

        Returns:
            The new session

        Raises:
            MdOrgSessionError: If a live session already uses this session ID
        """
        if session_id in self._sessions:
            raise MdOrgSessionError(
                f"Session '{session_id}' is already active",
                {'session_id': session_id, 'generation': self._sessions[session_id].generation}
            )

        generation = self._next_generation
        self._next_generation += 1

        session = ConversionSession(
            session_id,
            rule_engine=self._rule_engine,
            generation=generation,
            release_hook=self._on_session_released
        )
        self._sessions[session_id] = session

        def cleanup(cancelled: bool, signal_generation: int | None) -> str | None:
            if session.is_finalized():
                return None

            if signal_generation is not None and signal_generation != session.generation:
                self._logger.debug(
                    "Ignoring stale signal for session '%s' (generation %d, live %d)",
                    session_id, signal_generation, session.generation
                )
                return None

            # The release hook reports the event
            return session.cancel() if cancelled else session.finalize()

        self._cleanup_hooks[session_id] = cleanup
        self._logger.debug("Created session '%s' (generation %d)", session_id, generation)
        self._trigger_event(MdOrgSessionEvent.SESSION_CREATED, session_id)
        return session

    def get(self, session_id: str) -> ConversionSession | None:
        """
        Get the live session for a session ID.

        Args:
            session_id: Identity of the producer stream

        Returns:
            The live session, or None if there is none
        """
        return self._sessions.get(session_id)

    def live_session_ids(self) -> List[str]:
        """Get the IDs of all live sessions."""
        return list(self._sessions.keys())

    def feed(self, session_id: str, chunk: str) -> str:
        """
        Feed a chunk to the live session for a session ID.

        Args:
            session_id: Identity of the producer stream
            chunk: The next chunk of producer output

        Returns:
            Org text committed by this chunk

        Raises:
            MdOrgSessionError: If there is no live session for this ID
        """
        session = self._sessions.get(session_id)
        if session is None:
            raise MdOrgSessionError(f"No active session '{session_id}'", {'session_id': session_id})

        return session.feed(chunk)

    def finalize(self, session_id: str, generation: int | None = None) -> str | None:
        """
        Signal that a producer stream has completed.

        Args:
            session_id: Identity of the producer stream
            generation: Generation of the session the signal is meant for, if known

        Returns:
            The remaining Org text, or None if the signal matched no live session
        """
        return self._dispatch(session_id, False, generation)

    def cancel(self, session_id: str, generation: int | None = None) -> str | None:
        """
        Signal that a producer stream has been cancelled.

        Safe to call at any time, including before the first chunk and after the
        session has already been finalized.

        Args:
            session_id: Identity of the producer stream
            generation: Generation of the session the signal is meant for, if known

        Returns:
            The remaining Org text, or None if the signal matched no live session
        """
        return self._dispatch(session_id, True, generation)

    def _dispatch(self, session_id: str, cancelled: bool, generation: int | None) -> str | None:
        hook = self._cleanup_hooks.get(session_id)
        if hook is None:
            self._logger.debug("Ignoring signal for unknown session '%s'", session_id)
            return None

        return hook(cancelled, generation)

    def _on_session_released(self, session: ConversionSession, tail: str, cancelled: bool) -> None:
        """
        Drop the registry entries of a session that has released its resources.

        Called however the session was closed, whether through this manager or
        directly on the session, so listeners always see the flushed tail.

        Args:
            session: The released session
            tail: Text flushed when the session was closed
            cancelled: True if the producer stream was cancelled
        """
        live = self._sessions.get(session.session_id)
        if live is not session:
            return

        del self._sessions[session.session_id]
        del self._cleanup_hooks[session.session_id]

        event = MdOrgSessionEvent.SESSION_CANCELLED if cancelled else MdOrgSessionEvent.SESSION_FINALIZED
        self._trigger_event(event, session.session_id, tail)
