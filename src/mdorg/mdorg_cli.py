"""
mdorg - Command-line tool for converting Markdown to Org.

Converts a Markdown file (or standard input) to Org, either in one pass or by
streaming it through a conversion session in fixed-size chunks.  It can also
stream a reply from an Ollama server and convert it as it arrives.

Usage:
    python -m mdorg [--file PATH] [--output PATH] [options]

Options:
    --file PATH         Markdown file to convert (default: stdin)
    --output PATH       Org file to write (default: stdout)
    --chunk-size N      Stream the input in N-character chunks
    --ollama PROMPT     Convert the reply an Ollama model gives to PROMPT
    --settings PATH     JSON settings file
    --verbose           Log debug output
    --log-file PATH     Write the log to a rotating file instead of stderr
"""

import argparse
import asyncio
import logging
from logging.handlers import RotatingFileHandler
import sys
from typing import List, TextIO

from mdorg.mdorg_exceptions import MdOrgError
from mdorg.mdorg_ollama_stream import MdOrgOllamaStream
from mdorg.mdorg_rule_engine import MdOrgRuleEngine
from mdorg.mdorg_session_manager import MdOrgSessionManager
from mdorg.mdorg_settings import MdOrgSettings
from mdorg.mdorg_stream import convert_stream


def setup_logging(verbose: bool, log_file: str | None) -> None:
    """
    Configure logging for the command-line tool.

    Args:
        verbose: Log debug output if True, warnings and above otherwise
        log_file: Optional path of a rotating log file
    """
    handler: logging.Handler
    if log_file:
        handler = RotatingFileHandler(
            log_file,
            maxBytes=1024*1024,  # 1MB
            backupCount=9,
            encoding='utf-8'
        )

    else:
        handler = logging.StreamHandler(sys.stderr)

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[handler],
        force=True
    )


class MdOrgConverterApp:
    """
    Main converter application.

    Coordinates:
    - Loading settings
    - Reading Markdown input
    - Converting in one pass, in chunks, or from a live Ollama reply
    - Writing Org output
    """

    def __init__(self, args: argparse.Namespace):
        """
        Initialize the converter with command-line arguments.

        Args:
            args: Parsed command-line arguments
        """
        self.args = args
        self._logger = logging.getLogger("MdOrgConverterApp")

    def run(self) -> int:
        """
        Run the converter.

        Returns:
            Exit code (0 for success, non-zero for failure)
        """
        try:
            settings = self._load_settings()
            if self.args.chunk_size is not None:
                settings.chunk_size = self.args.chunk_size

            settings.validate()

            if self.args.ollama:
                pieces = asyncio.run(self._convert_ollama_reply(settings))
                self._write_output(pieces)
                return 0

            markdown = self._read_input()
            if settings.chunk_size > 0:
                pieces = self._convert_in_chunks(markdown, settings)

            else:
                pieces = [MdOrgRuleEngine(settings.fence_min_ticks).convert(markdown)]

            self._write_output(pieces)
            return 0

        except KeyboardInterrupt:
            self._print_error("Interrupted by user")
            return 130

        except (MdOrgError, OSError, ValueError) as e:
            self._logger.debug("Conversion failed", exc_info=True)
            self._print_error(str(e))
            return 1

    def _load_settings(self) -> MdOrgSettings:
        if self.args.settings:
            return MdOrgSettings.load(self.args.settings)

        return MdOrgSettings.create_default()

    def _read_input(self) -> str:
        if self.args.file:
            with open(self.args.file, 'r', encoding='utf-8') as f:
                return f.read()

        return sys.stdin.read()

    def _convert_in_chunks(self, markdown: str, settings: MdOrgSettings) -> List[str]:
        """Stream the input through a conversion session in fixed-size chunks."""
        manager = MdOrgSessionManager(settings)
        session_id = self.args.file or "stdin"
        manager.create(session_id)

        size = settings.chunk_size
        pieces = []
        for offset in range(0, len(markdown), size):
            pieces.append(manager.feed(session_id, markdown[offset:offset + size]))

        pieces.append(manager.finalize(session_id) or "")
        self._logger.debug("Converted %d characters in %d chunks", len(markdown), len(pieces) - 1)
        return pieces

    async def _convert_ollama_reply(self, settings: MdOrgSettings) -> List[str]:
        """Stream an Ollama reply through a conversion session."""
        producer = MdOrgOllamaStream(settings.ollama_url, settings.ollama_model, settings.temperature)
        manager = MdOrgSessionManager(settings)

        pieces = []
        async for converted in convert_stream(producer.stream_reply(self.args.ollama), manager, "ollama"):
            pieces.append(converted)
            if not self.args.output:
                sys.stdout.write(converted)
                sys.stdout.flush()

        return pieces

    def _write_output(self, pieces: List[str]) -> None:
        if self.args.output:
            with open(self.args.output, 'w', encoding='utf-8') as f:
                f.write("".join(pieces))

            return

        if self.args.ollama:
            # Already written as it arrived
            return

        out: TextIO = sys.stdout
        out.write("".join(pieces))
        out.flush()

    def _print_error(self, message: str) -> None:
        """Print error message."""
        print(f"Error: {message}", file=sys.stderr)


def parse_arguments(argv: List[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="mdorg",
        description="Convert Markdown to Org, in one pass or as a stream",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Convert a file
  python -m mdorg --file reply.md --output reply.org

  # Convert as if the text arrived 7 characters at a time
  python -m mdorg --file reply.md --chunk-size 7

  # Convert a live model reply
  python -m mdorg --ollama "Explain Python generators"
        """
    )

    parser.add_argument(
        '--file',
        help='Markdown file to convert (default: stdin)'
    )

    parser.add_argument(
        '--output',
        help='Org file to write (default: stdout)'
    )

    parser.add_argument(
        '--chunk-size',
        type=int,
        default=None,
        help='Stream the input in chunks of this many characters'
    )

    parser.add_argument(
        '--ollama',
        metavar='PROMPT',
        help='Convert the reply an Ollama model gives to PROMPT'
    )

    parser.add_argument(
        '--settings',
        help='JSON settings file'
    )

    parser.add_argument(
        '--verbose',
        action='store_true',
        help='Log debug output'
    )

    parser.add_argument(
        '--log-file',
        help='Write the log to a rotating file instead of stderr'
    )

    return parser.parse_args(argv)


def main(argv: List[str] | None = None) -> int:
    """Main entry point."""
    args = parse_arguments(argv)
    setup_logging(args.verbose, args.log_file)
    app = MdOrgConverterApp(args)
    return app.run()
