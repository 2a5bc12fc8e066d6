import subprocess
import threading
import time
from dataclasses import dataclass, field
from typing import IO, Callable, List, Optional

from ...utils.logger import get_logger
from ...utils.platform import PlatformProfile, get_platform_profile
from ..errors import ProcessSpawnError, ProcessTerminationError

logger = get_logger(__name__)

FLUSH_GRACE_S = 1.0
STOP_TIMEOUT_S = 5.0
READER_JOIN_TIMEOUT_S = 1.0


@dataclass
class CaptureProcess:
    """An external capture process and the threads draining its output."""

    popen: subprocess.Popen
    command: List[str]
    readers: List[threading.Thread] = field(default_factory=list)

    @property
    def pid(self) -> Optional[int]:
        return self.popen.pid

    def is_running(self) -> bool:
        return self.popen.poll() is None


class ProcessSupervisor:
    """
    Spawns and tears down the external capture process.

    Only one process is owned at a time. Termination never raises: every
    failure is logged and the caller always gets control back after the
    flush grace period.
    """

    def __init__(
        self,
        profile: Optional[PlatformProfile] = None,
        flush_grace_s: float = FLUSH_GRACE_S,
        stop_timeout_s: float = STOP_TIMEOUT_S,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._profile = profile or get_platform_profile()
        self.flush_grace_s = flush_grace_s
        self._stop_timeout_s = stop_timeout_s
        self._sleep = sleep
        self._active: Optional[CaptureProcess] = None

    @property
    def active(self) -> Optional[CaptureProcess]:
        return self._active

    def spawn(self, executable: str, args: List[str]) -> CaptureProcess:
        if self._active is not None and self._active.is_running():
            raise ProcessSpawnError(
                f"Capture process already running (PID {self._active.pid})"
            )

        command = [executable, *args]
        logger.info(f"Starting capture process: {' '.join(command)}")

        try:
            popen = subprocess.Popen(
                command,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                errors="replace",
            )
        except (OSError, ValueError) as e:
            raise ProcessSpawnError(f"Failed to start {executable}: {e}") from e

        process = CaptureProcess(popen=popen, command=command)
        for stream, label in ((popen.stdout, "stdout"), (popen.stderr, "stderr")):
            if stream is not None:
                process.readers.append(self._start_reader(stream, label))

        self._active = process
        logger.info(f"Capture process started with PID {popen.pid}")
        return process

    def terminate(self, process: CaptureProcess) -> None:
        try:
            self._terminate(process)
        except Exception as e:
            logger.error(f"Error terminating capture process: {e}", exc_info=True)
        finally:
            if self._active is process:
                self._active = None

        # Give the capture process time to flush buffered writes to disk.
        self._sleep(self.flush_grace_s)

        for reader in process.readers:
            reader.join(timeout=READER_JOIN_TIMEOUT_S)

    def _terminate(self, process: CaptureProcess) -> None:
        pid = process.pid
        logger.info(f"Stopping capture process (PID {pid})")

        try:
            process.popen.terminate()
        except OSError as e:
            self._log_failure(ProcessTerminationError(f"Error killing process: {e}"))

        if self._profile.kill_process_tree is not None and pid:
            try:
                self._profile.kill_process_tree(pid)
            except (OSError, subprocess.SubprocessError) as e:
                self._log_failure(
                    ProcessTerminationError(f"Error terminating process tree: {e}")
                )
            return

        try:
            process.popen.wait(timeout=self._stop_timeout_s)
        except subprocess.TimeoutExpired:
            logger.warning(
                f"Capture process {pid} did not exit within {self._stop_timeout_s}s, killing"
            )
            try:
                process.popen.kill()
            except OSError as e:
                self._log_failure(ProcessTerminationError(f"Error killing process: {e}"))

    @staticmethod
    def _log_failure(error: ProcessTerminationError) -> None:
        logger.error(f"[{error.code}] {error}")

    @staticmethod
    def _start_reader(stream: IO[str], label: str) -> threading.Thread:
        def forward() -> None:
            try:
                for line in stream:
                    line = line.rstrip()
                    if line:
                        logger.debug(f"FFmpeg {label}: {line}")
            except (OSError, ValueError) as e:
                logger.debug(f"FFmpeg {label} reader stopped: {e}")
            finally:
                stream.close()

        reader = threading.Thread(target=forward, name=f"ffmpeg-{label}", daemon=True)
        reader.start()
        return reader
