"""Runtime process supervision.

Handles:
- Spawning the runtime (e.g. electron) in the build output directory
- Killing it before a respawn or on teardown
- Sending the soft-reload message over an inherited pipe
- Relaying its stdout/stderr line by line into a logger
"""

import asyncio
import contextlib
import logging
import os
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Final

from ampere.events import EventBus, EventType
from ampere.exceptions import RuntimeNotFoundError
from ampere.logs import PrefixLogger
from ampere.runtime.output import LineDecoder

logger = logging.getLogger(__name__)

# Environment variable telling the child which inherited fd carries reload messages
CHANNEL_FD_ENV: Final = "AMPERE_CHANNEL_FD"
RELOAD_MESSAGE: Final = b"ampere:reload\n"

READ_CHUNK_SIZE: Final = 4096
EXIT_WAIT_SECONDS: Final = 5.0


@dataclass(eq=False)
class RuntimeProcess:
    """One spawned generation of the runtime process."""

    process: asyncio.subprocess.Process
    channel_fd: int | None
    watcher: asyncio.Task | None = None
    decoders: dict[str, LineDecoder] = field(
        default_factory=lambda: {"stdout": LineDecoder(), "stderr": LineDecoder()}
    )

    @property
    def pid(self) -> int:
        return self.process.pid

    def close_channel(self) -> None:
        if self.channel_fd is not None:
            with contextlib.suppress(OSError):
                os.close(self.channel_fd)
            self.channel_fd = None


class RuntimeSupervisor:
    """Owns at most one runtime process at a time.

    Usage:
        async with RuntimeSupervisor(app_path) as runtime:
            await runtime.open()    # hot reload: (re)spawn
            await runtime.signal()  # soft reload: refresh windows
        # the process is killed on exit, whatever the exit path
    """

    def __init__(
        self,
        app_path: Path,
        command: str = "electron",
        args: list[str] | None = None,
        workspace_root: Path | None = None,
        log: logging.Logger | logging.LoggerAdapter | None = None,
        event_bus: EventBus | None = None,
        env: dict[str, str] | None = None,
    ):
        self.app_path = Path(app_path)
        self.command = command
        self.args = args or []
        self.workspace_root = workspace_root or Path.cwd()
        self.log = log or PrefixLogger("Runtime", style="dim")
        self.event_bus = event_bus
        self.env = env or {}
        self._executable: str | None = None
        self._current: RuntimeProcess | None = None
        self._watchers: set[asyncio.Task] = set()

    async def __aenter__(self) -> "RuntimeSupervisor":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    @property
    def current(self) -> RuntimeProcess | None:
        """The tracked process, if any."""
        return self._current

    @property
    def is_running(self) -> bool:
        return self._current is not None

    def locate_runtime(self) -> str:
        """Find the runtime executable.

        Checks, in order: the command as a path, the workspace's
        node_modules/.bin, then PATH.

        Raises:
            RuntimeNotFoundError: If none of them has it.
        """
        if self._executable:
            return self._executable

        candidates: list[Path] = []
        if os.sep in self.command or (os.altsep and os.altsep in self.command):
            candidates.append(self.workspace_root / self.command)
        candidates.append(self.workspace_root / "node_modules" / ".bin" / self.command)

        for candidate in candidates:
            if candidate.is_file() and os.access(candidate, os.X_OK):
                self._executable = str(candidate)
                return self._executable

        found = shutil.which(self.command)
        if found is None:
            raise RuntimeNotFoundError(self.command)
        self._executable = found
        return found

    async def open(self) -> RuntimeProcess:
        """Spawn a fresh runtime process, killing the tracked one first.

        Raises:
            RuntimeNotFoundError: If the runtime executable is not installed.
        """
        if self._current is not None:
            self.kill()

        executable = self.locate_runtime()
        read_fd, write_fd = os.pipe()
        os.set_blocking(write_fd, False)
        env = {**os.environ, **self.env, CHANNEL_FD_ENV: str(read_fd)}

        try:
            process = await asyncio.create_subprocess_exec(
                executable,
                *self.args,
                str(self.app_path),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                pass_fds=(read_fd,),
                env=env,
            )
        except BaseException:
            os.close(write_fd)
            raise
        finally:
            os.close(read_fd)

        handle = RuntimeProcess(process=process, channel_fd=write_fd)
        self._current = handle
        handle.watcher = asyncio.create_task(self._watch(handle))
        self._watchers.add(handle.watcher)
        handle.watcher.add_done_callback(self._watchers.discard)

        logger.info(f"Runtime started with PID {process.pid}: {executable} {self.app_path}")
        if self.event_bus:
            await self.event_bus.emit(EventType.RUNTIME_STARTED, {"pid": process.pid})
        return handle

    def kill(self) -> None:
        """Terminate the tracked process without waiting for it to exit."""
        handle = self._current
        if handle is None:
            return
        self._current = None
        handle.close_channel()
        with contextlib.suppress(ProcessLookupError):
            handle.process.terminate()
        logger.debug(f"Runtime process {handle.pid} terminated")

    async def signal(self) -> RuntimeProcess:
        """Ask the running process to refresh; spawn one if none is tracked."""
        handle = self._current
        if handle is None or handle.channel_fd is None:
            return await self.open()

        try:
            os.write(handle.channel_fd, RELOAD_MESSAGE)
        except OSError as e:
            self.log.warning(f"Could not send reload message to runtime: {e}")
        return handle

    async def aclose(self) -> None:
        """Kill the tracked process and wait briefly for output to drain."""
        self.kill()
        if not self._watchers:
            return
        pending = list(self._watchers)
        _, still_running = await asyncio.wait(pending, timeout=EXIT_WAIT_SECONDS)
        for task in still_running:
            task.cancel()

    async def _relay(self, stream: asyncio.StreamReader | None, decoder: LineDecoder) -> None:
        if stream is None:
            return
        while chunk := await stream.read(READ_CHUNK_SIZE):
            for line in decoder.feed(chunk):
                self.log.info(line)

    async def _watch(self, handle: RuntimeProcess) -> None:
        process = handle.process
        try:
            await asyncio.gather(
                self._relay(process.stdout, handle.decoders["stdout"]),
                self._relay(process.stderr, handle.decoders["stderr"]),
            )
            returncode = await process.wait()
        except asyncio.CancelledError:
            with contextlib.suppress(ProcessLookupError):
                process.kill()
            raise
        finally:
            for decoder in handle.decoders.values():
                rest = decoder.flush()
                if rest:
                    self.log.info(rest)
            # A newer generation may already be tracked
            if self._current is handle:
                self._current = None
            handle.close_channel()

        logger.info(f"Runtime process {process.pid} exited with code {returncode}")
        if self.event_bus:
            await self.event_bus.emit(
                EventType.RUNTIME_EXITED, {"pid": process.pid, "returncode": returncode}
            )
