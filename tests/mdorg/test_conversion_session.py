"""
Tests for the ConversionSession class.
"""
import pytest

from mdorg.conversion_session import ConversionSession
from mdorg.mdorg_exceptions import MdOrgSessionError
from mdorg.mdorg_rule_engine import MdOrgRuleEngine
from mdorg.mdorg_types import FenceKind, FenceState


SAMPLE_DOCUMENTS = [
    "# Heading\n\nSome *emphasis* and **strong** text with `code`.\n\n"
    "* item one\n* item two\n\n```python\ndef f(x):\n    return x * 2  # *not* emphasis\n```\n\n"
    "## Next\nDone *here*",
    "#+begin_src elisp\n(message \"*hi*\")\n#+end_src\nAfter **that** `x`",
    "````\n```\ninner\n```\n````\ntrailing ``",
    "*a* **b** ***c*** \n*\n* \n#\n##x\n`",
    "```code```",
    "Plain text with no markup at all.",
    "  ```sh\nls *.py\n  ```\n#+BEGIN_SRC sh\n# keep\n#+END_SRC\n# Done\n",
]


def chunked(text, size):
    """Split text into chunks of the given size."""
    return [text[i:i + size] for i in range(0, len(text), size)]


class TestChunkBoundaryInvariance:
    """Test that chunk boundaries never change the output."""

    @pytest.mark.parametrize("text", SAMPLE_DOCUMENTS)
    def test_every_two_way_split(self, engine, stream_converter, text):
        """Test splitting the text at every possible position."""
        expected = engine.convert(text)
        for split in range(len(text) + 1):
            assert stream_converter([text[:split], text[split:]]) == expected, f"split at {split}"

    @pytest.mark.parametrize("text", SAMPLE_DOCUMENTS)
    @pytest.mark.parametrize("size", [1, 2, 3, 5, 8])
    def test_fixed_size_chunks(self, engine, stream_converter, text, size):
        """Test feeding the text in fixed-size chunks."""
        assert stream_converter(chunked(text, size)) == engine.convert(text)

    def test_fence_balance_over_every_split(self, stream_converter):
        """Test a one-line fence split at every character boundary."""
        text = "```code```"
        outputs = set()
        for split in range(len(text) + 1):
            outputs.add(stream_converter([text[:split], text[split:]]))

        outputs.add(stream_converter(list(text)))
        assert outputs == {"#+begin_src code#+end_src"}


class TestFeed:
    """Test incremental feeding."""

    def test_heading(self, session):
        """Test a complete heading line."""
        assert session.feed("# Title\n") == "* Title\n"
        assert session.finalize() == ""

    def test_sub_heading(self, session):
        """Test a sub-heading without a trailing newline."""
        assert session.feed("## Sub") == "** Sub"

    def test_bullet(self, session):
        """Test a bullet at the start of the stream."""
        assert session.feed("* item\n") == "- item\n"

    def test_emphasis_resolved_at_finalize(self, session):
        """Test that a trailing star is decided when the stream ends."""
        assert session.feed("*word*") == "/word"
        assert session.hold_marker == 5
        assert session.finalize() == "/"

    @pytest.mark.parametrize("chunk,committed", [
        ("a *", "a "),
        ("Note:*", "Note:"),
        ("x\n*", "x\n"),
    ])
    def test_trailing_star_stays_literal_at_finalize(self, session, chunk, committed):
        """Test that a star with nothing after it never opens emphasis."""
        assert session.feed(chunk) == committed
        assert session.hold_marker == len(committed)
        assert session.finalize() == "*"

    def test_empty_result_while_holding(self, session):
        """Test that feeding undecided text returns nothing."""
        assert session.feed("`") == ""
        assert session.hold_marker == 0
        assert session.cursor == 0
        assert session.pending_text() == "`"

    def test_empty_chunk(self, session):
        """Test feeding an empty chunk."""
        assert session.feed("") == ""
        assert session.hold_marker is None

    def test_hold_keeps_preceding_text_flowing(self, session):
        """Test that text before a held token is returned immediately."""
        assert session.feed("abc `") == "abc "
        assert session.cursor == 4
        assert session.hold_marker == 4
        assert session.feed("x` def") == "=x= def"
        assert session.hold_marker is None

    def test_literal_fallback_at_end(self, session):
        """Test that an unterminated backtick run is emitted literally."""
        assert session.feed("``") == ""
        assert session.finalize() == "``"

    def test_fence_state_persists_across_feeds(self, session):
        """Test that an open fence is remembered between chunks."""
        assert session.feed("```py\n") == "#+begin_src py\n"
        assert session.fence_state == FenceState.code_fence(3)

        assert session.feed("x = 1\n``") == "x = 1\n"
        assert session.hold_marker == session.cursor
        assert session.pending_text() == "``"

        assert session.feed("`\n") == "#+end_src\n"
        assert session.fence_state == FenceState()

    def test_native_block_split_marker(self, session):
        """Test a native block marker split across chunks."""
        assert session.feed("#+beg") == ""
        assert session.feed("in_src py\n") == "#+begin_src py\n"
        assert session.fence_state.kind == FenceKind.AWAITING_FENCE_CLOSE
        assert session.feed("*x*\n#+end_src\n") == "*x*\n#+end_src\n"
        assert session.fence_state.kind == FenceKind.NONE

    def test_monotonic_commitment(self, engine):
        """Test that committed output only ever grows and is never revised."""
        text = SAMPLE_DOCUMENTS[0]
        session = ConversionSession("mono")
        committed = ""
        for ch in text:
            before = committed
            committed += session.feed(ch)
            assert committed.startswith(before)
            assert engine.convert(text).startswith(committed)

        committed += session.finalize()
        assert committed == engine.convert(text)

    def test_uses_given_rule_engine(self):
        """Test that a session uses the rule engine it was given."""
        session = ConversionSession("ticks", MdOrgRuleEngine(fence_min_ticks=1))
        assert session.feed("`x`\n") == "#+begin_src x#+end_src\n"


class TestLifecycle:
    """Test finalization and cancellation."""

    def test_identity(self):
        """Test session identity accessors."""
        session = ConversionSession("req-7", generation=4)
        assert session.session_id == "req-7"
        assert session.generation == 4
        assert not session.is_finalized()

    def test_feed_after_finalize_raises(self, session):
        """Test that a finalized session rejects more input."""
        session.finalize()
        with pytest.raises(MdOrgSessionError) as exc_info:
            session.feed("more")

        assert exc_info.value.error_details["session_id"] == "session-1"

    def test_finalize_twice(self, session):
        """Test that finalizing twice returns nothing the second time."""
        session.feed("abc\n``")
        assert session.finalize() == "``"
        assert session.finalize() == ""
        assert session.is_finalized()

    def test_cancel_flushes_held_text(self, session):
        """Test that cancelling emits the held text literally."""
        assert session.feed("abc\n```") == "abc\n"
        assert session.cancel() == "```"
        assert session.is_finalized()
        assert session.pending_text() == ""

    def test_cancel_before_first_feed(self, session):
        """Test cancelling a session that never received input."""
        assert session.cancel() == ""
        assert session.cancel() == ""

    def test_release_hook_called_once(self):
        """Test that the release hook runs exactly once."""
        released = []
        session = ConversionSession(
            "hook",
            release_hook=lambda released_session, tail, cancelled: released.append((released_session, tail, cancelled))
        )
        session.feed("text\n``")
        session.finalize()
        session.cancel()
        session.finalize()
        assert released == [(session, "``", False)]

    def test_release_hook_reports_cancellation(self):
        """Test that the release hook is told the stream was cancelled."""
        released = []
        session = ConversionSession(
            "hook",
            release_hook=lambda released_session, tail, cancelled: released.append((tail, cancelled))
        )
        session.feed("x\n#")
        session.cancel()
        assert released == [("#", True)]
