"""Drive a conversion session from an asynchronous stream of chunks."""

import logging
from typing import AsyncGenerator, AsyncIterable

from mdorg.mdorg_session_manager import MdOrgSessionManager


_logger = logging.getLogger("MdOrgStream")


async def convert_stream(
    chunks: AsyncIterable[str],
    manager: MdOrgSessionManager,
    session_id: str
) -> AsyncGenerator[str, None]:
    """
    Convert an asynchronous stream of Markdown chunks to Org.

    Converted text is yielded as soon as it is final.  When the producer is
    exhausted the session is finalized and the remaining text is yielded.  If the
    producer fails, the consumer stops early, or the task is cancelled, the
    session is cancelled instead, the producer is closed if it supports
    aclose(), and the exception propagates.

    Args:
        chunks: The producer's Markdown chunks
        manager: Session manager that owns the conversion session
        session_id: Identity of the producer stream

    Yields:
        Newly committed Org text
    """
    session = manager.create(session_id)
    try:
        async for chunk in chunks:
            if not chunk:
                continue

            converted = session.feed(chunk)
            if converted:
                yield converted

    except BaseException:
        _logger.debug("Stream for session '%s' ended early", session_id)
        manager.cancel(session_id, session.generation)

        # Let the producer release its connection now rather than on garbage collection
        aclose = getattr(chunks, "aclose", None)
        if aclose is not None:
            await aclose()

        raise

    tail = manager.finalize(session_id, session.generation)
    if tail:
        yield tail
