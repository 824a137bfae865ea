"""
Save runner — pipes a document through the configured filter commands and
turns the filtered output back into minimal edits.
"""

from __future__ import annotations

import locale
import logging
import os
import re
import shlex
import subprocess
from dataclasses import dataclass
from typing import Optional

from .config import Config
from .editing.appliers import apply_via_builder
from .editing.document import TextDocument
from .editing.edits import compute_edits
from .editing.models import FilePatch

logger = logging.getLogger(__name__)

_FILE_PLACEHOLDER = "${file}"


class FilterError(RuntimeError):
    """A filter command failed (non-zero exit or timeout)."""

    def __init__(self, command: str, returncode: Optional[int], stderr: str = "") -> None:
        self.command = command
        self.returncode = returncode
        self.stderr = stderr
        if returncode is None:
            reason = stderr or "did not finish"
        else:
            reason = f"exited with code {returncode}"
            if stderr.strip():
                reason += f": {stderr.strip()}"
        super().__init__(f"Command `{command}` {reason}")


@dataclass
class FilterCommand:
    """One configured command and the files it applies to."""
    before: Optional[str] = None
    after: Optional[str] = None
    match: Optional[re.Pattern] = None
    not_match: Optional[re.Pattern] = None

    @classmethod
    def from_dict(cls, data: dict) -> Optional["FilterCommand"]:
        """Build a command from a config entry; None if a pattern is invalid."""
        try:
            match = re.compile(data["match"]) if data.get("match") else None
            not_match = re.compile(data["not_match"]) if data.get("not_match") else None
        except re.error as exc:
            logger.warning("[SaveRunner] Invalid pattern in command %r: %s", data, exc)
            return None
        return cls(
            before=data.get("before"),
            after=data.get("after"),
            match=match,
            not_match=not_match,
        )

    def applies_to(self, path: str) -> bool:
        if self.match is not None and not self.match.search(path):
            return False
        if self.not_match is not None and self.not_match.search(path):
            return False
        return True


def render_command(command: str, path: str) -> str:
    """Substitute the quoted *path* for ``${file}`` in *command*."""
    return command.replace(_FILE_PLACEHOLDER, shlex.quote(path))


def run_filter(
    command: str,
    text: str,
    shell: Optional[str] = None,
    timeout: float = 30.0,
    cwd: Optional[str] = None,
) -> str:
    """Run *command* with *text* on stdin and return its stdout.

    Raises
    ------
    FilterError
        When the command exits non-zero or does not finish in *timeout*
        seconds.
    """
    logger.info("[SaveRunner] Running command: %s", command)
    proc = subprocess.Popen(
        command, shell=True, executable=shell,
        stdin=subprocess.PIPE,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        cwd=cwd or None,
    )
    try:
        stdout_bytes, stderr_bytes = proc.communicate(text.encode("utf-8"), timeout=timeout)
    except subprocess.TimeoutExpired:
        proc.kill()
        proc.communicate()
        logger.warning("[SaveRunner] Command timed out after %ss: %s", timeout, command)
        raise FilterError(command, None, f"timed out after {timeout} seconds")

    stderr = _decode_output(stderr_bytes)
    if proc.returncode != 0:
        raise FilterError(command, proc.returncode, stderr)
    if stderr.strip():
        logger.warning("[SaveRunner] %s wrote to stderr: %s", command, stderr.strip())
    return _decode_output(stdout_bytes)


def _decode_output(raw: bytes | None) -> str:
    """Decode subprocess output, trying UTF-8 first then system default."""
    if not raw:
        return ""
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError:
        return raw.decode(locale.getpreferredencoding(False), errors="replace")


class SaveRunner:
    """Apply configured filter commands to documents around a save."""

    def __init__(self, config: Config) -> None:
        self._config = config
        self._commands: list[FilterCommand] = []
        for entry in config.COMMANDS:
            command = FilterCommand.from_dict(entry)
            if command is not None:
                self._commands.append(command)

    def commands_for(self, path: str) -> list[FilterCommand]:
        if not self._config.ENABLED:
            return []
        return [command for command in self._commands if command.applies_to(path)]

    def transform(self, document: TextDocument) -> FilePatch:
        """Filter the document text and diff the result against it.

        The document itself is left untouched.  A failing filter raises
        :class:`FilterError`.
        """
        original = document.text
        text = original
        cwd = os.path.dirname(os.path.abspath(document.uri))
        for command in self.commands_for(document.uri):
            if not command.before:
                continue
            text = run_filter(
                render_command(command.before, os.path.abspath(document.uri)), text,
                shell=self._config.SHELL,
                timeout=self._config.FILTER_TIMEOUT,
                cwd=cwd,
            )

        return compute_edits(
            document.uri, original, text,
            eol_policy=self._config.EOL_POLICY,
            context_lines=self._config.CONTEXT_LINES,
        )

    def run_before_save(self, document: TextDocument) -> FilePatch:
        """Filter the document and apply the resulting edits to it."""
        patch = self.transform(document)
        if patch.edits:
            with document.edit() as builder:
                for edit in patch.edits:
                    apply_via_builder(edit, builder)
            logger.info(
                "[SaveRunner] Applied %d edit(s) to %s", len(patch.edits), document.uri
            )
        return patch

    def run_after_save(self, path: str) -> list[str]:
        """Run the ``after`` commands for a saved file; returns their output."""
        outputs: list[str] = []
        cwd = os.path.dirname(os.path.abspath(path))
        for command in self.commands_for(path):
            if not command.after:
                continue
            outputs.append(run_filter(
                render_command(command.after, os.path.abspath(path)), "",
                shell=self._config.SHELL,
                timeout=self._config.FILTER_TIMEOUT,
                cwd=cwd,
            ))
        return outputs
