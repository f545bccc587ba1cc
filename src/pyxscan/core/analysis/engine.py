"""Structured-output analysis engines.

The orchestrator only needs ``invoke(prompt, system_prompt, schema,
model) -> dict``. ``ClaudeCliEngine`` implements it by running the
``claude`` CLI in print mode with a JSON schema; a hosted-API client can
implement the same interface.

The CLI prints a JSON envelope::

    {"type": "result", "is_error": false, "structured_output": {...}}

Two failure classes are kept apart: ``EngineOutputError`` for transport
and parse problems (timeouts, non-JSON output, no structured output),
``EngineReportedError`` when the envelope itself reports an error.
Neither is retried.
"""

from __future__ import annotations

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from typing import Any

from pyxscan.exceptions import EngineOutputError, EngineReportedError

logger = logging.getLogger(__name__)

# Upper bound for one engine call (seconds).
DEFAULT_ENGINE_TIMEOUT: float = 600.0

# Largest accepted stdout payload.
MAX_OUTPUT_BYTES: int = 10 * 1024 * 1024


class AnalysisEngine(ABC):
    """A stateless structured-output model call."""

    @abstractmethod
    async def invoke(
        self,
        prompt: str,
        system_prompt: str,
        schema: dict[str, Any],
        model: str,
    ) -> dict[str, Any]:
        """Run one model call and return its structured output.

        Args:
            prompt: User prompt.
            system_prompt: System prompt.
            schema: JSON schema the output must follow.
            model: Model identifier (``opus``, ``sonnet``, ``haiku``).

        Returns:
            The structured output object.

        Raises:
            EngineOutputError: On transport or parse failure.
            EngineReportedError: When the engine reports an error.
        """


def parse_envelope(raw: str) -> dict[str, Any]:
    """Extract ``structured_output`` from a CLI JSON envelope.

    Raises:
        EngineOutputError: If *raw* is not a JSON object or has no
            structured output.
        EngineReportedError: If the envelope has ``is_error`` set.
    """
    try:
        envelope = json.loads(raw)
    except ValueError:
        raise EngineOutputError(f"engine returned non-JSON output: {raw[:500]}") from None
    if not isinstance(envelope, dict):
        raise EngineOutputError("engine output is not a JSON object")
    if envelope.get("is_error"):
        detail = envelope.get("result") or envelope.get("subtype") or "unknown error"
        raise EngineReportedError(f"engine reported an error: {detail}")
    structured = envelope.get("structured_output")
    if not isinstance(structured, dict):
        raise EngineOutputError("engine output has no structured_output")
    return structured


class ClaudeCliEngine(AnalysisEngine):
    """Runs the ``claude`` CLI as a subprocess."""

    def __init__(
        self,
        binary: str = "claude",
        *,
        timeout: float = DEFAULT_ENGINE_TIMEOUT,
        max_output_bytes: int = MAX_OUTPUT_BYTES,
    ) -> None:
        self.binary = binary
        self.timeout = timeout
        self.max_output_bytes = max_output_bytes

    def build_args(self, prompt: str, system_prompt: str, schema: dict[str, Any], model: str) -> list[str]:
        return [
            self.binary,
            "-p", prompt,
            "--json-schema", json.dumps(schema),
            "--model", model,
            "--output-format", "json",
            "--system-prompt", system_prompt,
            "--permission-mode", "default",
        ]

    async def invoke(
        self,
        prompt: str,
        system_prompt: str,
        schema: dict[str, Any],
        model: str,
    ) -> dict[str, Any]:
        args = self.build_args(prompt, system_prompt, schema, model)
        logger.debug("Invoking %s with model %s (%d prompt chars)", self.binary, model, len(prompt))
        try:
            proc = await asyncio.create_subprocess_exec(
                *args,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError:
            raise EngineOutputError(f"analysis engine binary not found: {self.binary}") from None

        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
            raise EngineOutputError(f"analysis engine timed out after {self.timeout:g}s") from None

        if len(stdout) > self.max_output_bytes:
            raise EngineOutputError(f"analysis engine output exceeded {self.max_output_bytes} bytes")
        if proc.returncode != 0:
            message = stderr.decode("utf-8", errors="replace").strip()[:500]
            raise EngineOutputError(f"analysis engine exited with {proc.returncode}: {message}")
        return parse_envelope(stdout.decode("utf-8", errors="replace"))
