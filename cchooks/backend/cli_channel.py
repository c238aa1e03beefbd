"""Command channel: the locally installed Claude CLI."""

import asyncio
import json
import shutil
import time
from typing import Any

import structlog

from cchooks.exceptions import ChannelError


logger = structlog.get_logger(__name__)

CHANNEL_NAME = "cli"


class CLIChannel:
    """Sends a single prompt through ``claude --print`` and parses its JSON output."""

    name = CHANNEL_NAME

    def __init__(self, binary: str = "claude", timeout: float = 120.0):
        """Initialize the command channel.

        Args:
            binary: Name or path of the Claude CLI executable
            timeout: Seconds to wait for one CLI call
        """
        self.binary = binary
        self.timeout = timeout

    def resolve(self) -> str | None:
        """Absolute path of the executable, or None when it is not on PATH."""
        return shutil.which(self.binary)

    async def probe(self) -> bool:
        path = self.resolve()
        logger.debug("cli_channel_probe", binary=self.binary, path=path)
        return path is not None

    async def call(
        self, prompt: str, model: str, max_tokens: int, temperature: float
    ) -> dict[str, Any]:
        """Run the CLI with the prompt on stdin.

        The CLI has no flags for ``max_tokens`` or ``temperature``; they are
        accepted so both channels share one call signature.

        Returns:
            An API-shaped payload ``{"id": ..., "content": [{"type": "text", "text": ...}]}``

        Raises:
            ChannelError: The executable is missing, times out, or reports an error
        """
        executable = self.resolve()
        if executable is None:
            raise ChannelError(self.name, f"'{self.binary}' not found on PATH")

        cmd = [executable, "--print", "--output-format", "json", "--model", model]
        logger.debug(
            "cli_channel_call",
            model=model,
            max_tokens=max_tokens,
            temperature=temperature,
            prompt_length=len(prompt),
        )

        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise ChannelError(self.name, str(e)) from e

        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(prompt.encode()), timeout=self.timeout
            )
        except TimeoutError as e:
            process.kill()
            await process.wait()
            raise ChannelError(
                self.name, f"timed out after {self.timeout}s"
            ) from e

        if process.returncode != 0:
            raise ChannelError(
                self.name,
                stderr.decode(errors="replace").strip()
                or f"exited with status {process.returncode}",
                details={"returncode": process.returncode},
            )

        return self._parse_output(stdout.decode(errors="replace"))

    def _parse_output(self, output: str) -> dict[str, Any]:
        text = output.strip()
        response_id: str | None = None

        try:
            data = json.loads(text)
        except json.JSONDecodeError:
            data = None

        if isinstance(data, dict):
            if data.get("is_error"):
                raise ChannelError(self.name, str(data.get("result") or "CLI error"))
            response_id = data.get("session_id") or data.get("id")
            content = data.get("result", data.get("content"))
            if isinstance(content, list):
                # Already API-shaped
                text = "".join(
                    block.get("text", "")
                    for block in content
                    if isinstance(block, dict) and block.get("type") == "text"
                )
            elif isinstance(content, str):
                text = content
        elif isinstance(data, str):
            text = data

        if not text:
            raise ChannelError(self.name, "empty response")

        return {
            "id": response_id or f"claude-cli-{int(time.time() * 1000)}",
            "content": [{"type": "text", "text": text}],
        }
