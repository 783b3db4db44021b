"""Stream a chat reply from an Ollama server as Markdown chunks."""

import asyncio
import json
import logging
import ssl
from typing import Any, AsyncGenerator, Dict

import aiohttp
from aiohttp import ClientConnectorError, ClientError
import certifi

from mdorg.mdorg_exceptions import MdOrgProducerError


class OllamaChunkHandler:
    """Handles the newline-delimited JSON chunks of an Ollama chat reply."""

    def __init__(self) -> None:
        """Initialize the chunk handler."""
        self.content = ""
        self.done = False
        self.prompt_tokens = 0
        self.completion_tokens = 0

    def update_from_chunk(self, chunk: Dict[str, Any]) -> str:
        """
        Update from a response chunk and return its new content, if any.

        Args:
            chunk: Decoded response chunk from the Ollama API

        Returns:
            The content added by this chunk

        Raises:
            MdOrgProducerError: If the chunk reports an error
        """
        if "error" in chunk:
            error = chunk["error"]
            message = error if isinstance(error, str) else error.get("message", "Unknown error")
            raise MdOrgProducerError(f"Ollama error: {message}", {'chunk': chunk})

        delta = ""
        message_data = chunk.get("message")
        if isinstance(message_data, dict):
            delta = message_data.get("content") or ""
            self.content += delta

        if chunk.get("done"):
            self.done = True
            self.prompt_tokens = chunk.get("prompt_eval_count", 0)
            self.completion_tokens = chunk.get("eval_count", 0)

        return delta


class MdOrgOllamaStream:
    """Ollama chat client that yields the reply as it is generated."""

    def __init__(
        self,
        url: str = "http://localhost:11434/api/chat",
        model: str = "llama3.2",
        temperature: float = 0.7
    ) -> None:
        """
        Initialize the Ollama stream.

        Args:
            url: Ollama chat API URL
            model: Name of the model to use
            temperature: Sampling temperature
        """
        self._url = url
        self._model = model
        self._temperature = temperature
        self._max_retries = 6
        self._base_delay = 2
        self._logger = logging.getLogger("MdOrgOllamaStream")
        self._ssl_context = ssl.create_default_context(cafile=certifi.where())

    def build_request_data(self, prompt: str) -> Dict[str, Any]:
        """
        Build the chat request body.

        Args:
            prompt: The user prompt

        Returns:
            Request data for the Ollama chat API
        """
        return {
            "model": self._model,
            "messages": [
                {
                    "role": "user",
                    "content": prompt
                }
            ],
            "stream": True,
            "options": {
                "temperature": self._temperature
            }
        }

    async def stream_reply(self, prompt: str) -> AsyncGenerator[str, None]:
        """
        Send a prompt and stream the reply content.

        Connection failures are retried with exponential backoff until the first
        content has been received; after that a retry would repeat output, so the
        failure is raised instead.

        Args:
            prompt: The user prompt

        Yields:
            Content deltas of the reply, in order

        Raises:
            MdOrgProducerError: If the server reports an error or cannot be reached
        """
        data = self.build_request_data(prompt)

        # Use explicit IPv4 for local connections as localhost can cause SSL issues!
        url = self._url.replace("localhost", "127.0.0.1")

        post_timeout = aiohttp.ClientTimeout(
            total=None,
            sock_connect=20,
            sock_read=120
        )

        attempt = 0
        received = False
        while True:
            try:
                async with aiohttp.ClientSession(connector=aiohttp.TCPConnector(ssl=self._ssl_context)) as session:
                    async with session.post(
                        url,
                        headers={"Content-Type": "application/json"},
                        json=data,
                        timeout=post_timeout
                    ) as response:
                        if response.status != 200:
                            response_message = await response.text()
                            self._logger.debug("API error: %d: %s", response.status, response_message)
                            raise MdOrgProducerError(
                                f"API error {response.status}: {response_message}",
                                {'status': response.status, 'body': response_message}
                            )

                        handler = OllamaChunkHandler()
                        async for line in response.content:
                            decoded_line = line.decode('utf-8').strip()
                            if not decoded_line:
                                continue

                            try:
                                chunk = json.loads(decoded_line)

                            except json.JSONDecodeError as e:
                                self._logger.warning("Unable to parse: %s (%s)", decoded_line, str(e))
                                continue

                            delta = handler.update_from_chunk(chunk)
                            if delta:
                                received = True
                                yield delta

                            if handler.done:
                                self._logger.debug(
                                    "Reply complete: %d prompt tokens, %d completion tokens",
                                    handler.prompt_tokens, handler.completion_tokens
                                )
                                break

                        return

            except (ClientConnectorError, ClientError, asyncio.TimeoutError) as e:
                self._logger.warning("Network error (attempt %d/%d): %s", attempt + 1, self._max_retries, str(e))
                if received or attempt >= self._max_retries - 1:
                    raise MdOrgProducerError(
                        f"Network error: {str(e)}",
                        {'type': type(e).__name__, 'attempt': attempt + 1}
                    ) from e

                await asyncio.sleep(self._base_delay * (2 ** attempt))
                attempt += 1
