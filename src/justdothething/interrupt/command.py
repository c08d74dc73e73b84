"""Text-to-speech through a local speech synthesizer command.

Drives ``espeak-ng``/``espeak`` on Linux or ``say`` on macOS as asyncio
subprocesses, translating relative voice parameters to command flags.
"""

from __future__ import annotations

import asyncio
import logging
import shutil
from pathlib import Path
from typing import Callable

from justdothething.interrupt.base import SpeechError, SpeechOutput, VoiceParams

logger = logging.getLogger(__name__)

_CANDIDATES = ("espeak-ng", "espeak", "say")

# Engine defaults that VoiceParams scale
_ESPEAK_PITCH = 50
_ESPEAK_WPM = 175
_ESPEAK_AMPLITUDE = 100
_SAY_WPM = 175


def detect_speech_command() -> str | None:
    """Return the first speech synthesizer found on PATH."""
    for name in _CANDIDATES:
        path = shutil.which(name)
        if path:
            return path
    return None


def build_command(binary: str, text: str, voice: VoiceParams) -> list[str]:
    """Build the argv for one utterance."""
    name = Path(binary).name
    if name == "say":
        args = [binary, "-r", str(round(_SAY_WPM * voice.rate))]
        # say has no volume flag; use its embedded volume command
        return args + [f"[[volm {voice.volume:.2f}]] {text}"]

    args = [
        binary,
        "-p", str(max(0, min(99, round(_ESPEAK_PITCH * voice.pitch)))),
        "-s", str(round(_ESPEAK_WPM * voice.rate)),
        "-a", str(max(0, min(200, round(_ESPEAK_AMPLITUDE * voice.volume)))),
    ]
    if voice.voice_preference == "male":
        args += ["-v", "en+m3"]
    elif voice.voice_preference == "female":
        args += ["-v", "en+f3"]
    return args + ["--", text]


class CommandSpeechOutput(SpeechOutput):
    """Speaks messages with a command-line speech synthesizer."""

    backend_name = "command"

    def __init__(
        self,
        command: str | None = None,
        on_start: Callable[[str], None] | None = None,
        on_end: Callable[[str], None] | None = None,
        on_error: Callable[[str, Exception], None] | None = None,
    ) -> None:
        super().__init__(on_start=on_start, on_end=on_end, on_error=on_error)
        self._command = command or detect_speech_command()
        self._running: set[asyncio.subprocess.Process] = set()
        # Bumped by cancel_all; a spawn that straddles a bump is terminated
        self._generation = 0

    @property
    def command(self) -> str | None:
        return self._command

    async def speak(self, text: str, voice: VoiceParams) -> None:
        if not self._command:
            error = SpeechError("No speech synthesizer found (install espeak-ng)", backend=self.backend_name)
            self._notify_error(text, error)
            raise error

        argv = build_command(self._command, text, voice)
        logger.debug("Speaking via %s: %r", argv[0], text)
        generation = self._generation
        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            error = SpeechError(f"Failed to start {argv[0]}: {e}", backend=self.backend_name)
            self._notify_error(text, error)
            raise error from e

        if generation != self._generation:
            logger.info("Utterance cancelled while starting %s", argv[0])
            _terminate(process)
            await process.wait()
            return

        self._running.add(process)
        self._notify_start(text)
        try:
            _, stderr = await process.communicate()
        finally:
            self._running.discard(process)

        # Negative return codes mean we terminated it in cancel_all
        if process.returncode is not None and process.returncode > 0:
            detail = stderr.decode(errors="replace").strip() if stderr else ""
            error = SpeechError(
                f"{argv[0]} exited with {process.returncode}: {detail}", backend=self.backend_name,
            )
            self._notify_error(text, error)
            raise error
        self._notify_end(text)

    async def cancel_all(self) -> None:
        self._generation += 1
        for process in list(self._running):
            _terminate(process)
        if self._running:
            logger.info("Cancelled %d utterance(s)", len(self._running))


def _terminate(process: asyncio.subprocess.Process) -> None:
    if process.returncode is None:
        try:
            process.terminate()
        except ProcessLookupError:
            pass
