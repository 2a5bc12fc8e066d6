"""
Recording session state machine.

Ties device discovery, the process supervisor and the fallback synthesizer
into a single start/stop contract with at most one active session:

    IDLE -> RECORDING -> STOPPING -> IDLE

Which capture path a session uses is decided by ``CapturePolicy``. The
default policy always writes a silent placeholder; ffmpeg capture is opt-in.
"""

import threading
from dataclasses import dataclass
from enum import Enum, auto
from pathlib import Path
from typing import Callable, List, Optional

from ...utils.logger import get_logger
from ...utils.platform import PlatformProfile, get_platform_profile
from ..errors import (
    AlreadyRecordingError,
    ArtifactMissingError,
    NotRecordingError,
    ProcessSpawnError,
    RecordingStartError,
)
from .devices import AudioDevice, find_ffmpeg, list_devices, pick_capture_device
from .fallback import synthesize
from .storage import get_audio_dir, new_recording_path
from .supervisor import CaptureProcess, ProcessSupervisor

logger = get_logger(__name__)

MIN_ARTIFACT_BYTES = 100
CAPTURE_SAMPLE_RATE = 44100
MAX_CAPTURE_DURATION_S = 300


class RecordingState(Enum):
    IDLE = auto()
    RECORDING = auto()
    STOPPING = auto()


@dataclass
class RecordingSession:
    state: RecordingState = RecordingState.IDLE
    artifact_path: Optional[Path] = None
    process: Optional[CaptureProcess] = None


@dataclass(frozen=True)
class RecordingStatus:
    recording: bool
    path: Optional[Path]

    def to_dict(self) -> dict:
        return {"recording": self.recording, "path": str(self.path) if self.path else None}


class FallbackCapture:
    """Writes a silent placeholder artifact; never owns a process."""

    name = "fallback"

    def __init__(self, synthesizer: Callable[[Path], None] = synthesize):
        self._synthesizer = synthesizer

    def is_available(self) -> bool:
        return True

    def begin(self, path: Path) -> Optional[CaptureProcess]:
        self._synthesizer(path)
        return None


class FfmpegCapture:
    """Records from a discovered input device with an ffmpeg child process."""

    name = "ffmpeg"

    def __init__(
        self,
        supervisor: ProcessSupervisor,
        ffmpeg_path: Optional[str] = None,
        profile: Optional[PlatformProfile] = None,
        device_lister: Callable[..., List[AudioDevice]] = list_devices,
    ):
        self._supervisor = supervisor
        self._ffmpeg_path = ffmpeg_path
        self._profile = profile or get_platform_profile()
        self._device_lister = device_lister

    def is_available(self) -> bool:
        return find_ffmpeg(self._ffmpeg_path) is not None

    def build_args(self, path: Path, device: Optional[str]) -> List[str]:
        return [
            *self._profile.capture_input_args(device),
            "-y",
            "-acodec",
            "pcm_s16le",
            "-ar",
            str(CAPTURE_SAMPLE_RATE),
            "-ac",
            "1",
            "-t",
            str(MAX_CAPTURE_DURATION_S),
            str(path),
        ]

    def begin(self, path: Path) -> Optional[CaptureProcess]:
        ffmpeg = find_ffmpeg(self._ffmpeg_path)
        if ffmpeg is None:
            raise ProcessSpawnError("FFmpeg not found")

        device = pick_capture_device(self._device_lister(ffmpeg, self._profile))
        if device is not None:
            logger.info(f"Using detected microphone device: {device.name}")
        else:
            logger.info(
                f"No audio devices detected, using default input '{self._profile.default_capture_device}'"
            )

        return self._supervisor.spawn(
            ffmpeg, self.build_args(path, device.name if device else None)
        )


@dataclass
class CapturePolicy:
    real_capture_enabled: bool = False

    def choose(self, real: FfmpegCapture, fallback: FallbackCapture):
        if self.real_capture_enabled and real.is_available():
            return real
        return fallback


class RecordingController:
    """
    Owns the single recording session.

    ``start`` and ``stop`` are the only mutators. A short lock makes each state
    transition atomic; it is never held across the supervisor's flush grace
    period so ``status`` stays responsive.

    Example:
        controller = RecordingController()
        path = controller.start()
        ...
        path = controller.stop()
    """

    def __init__(
        self,
        audio_dir: Optional[Path] = None,
        supervisor: Optional[ProcessSupervisor] = None,
        policy: Optional[CapturePolicy] = None,
        fallback: Optional[FallbackCapture] = None,
        real_capture: Optional[FfmpegCapture] = None,
        ffmpeg_path: Optional[str] = None,
        min_artifact_bytes: int = MIN_ARTIFACT_BYTES,
        on_state_change: Optional[Callable[[RecordingState, RecordingState], None]] = None,
    ):
        self.audio_dir = audio_dir or get_audio_dir()
        self.audio_dir.mkdir(parents=True, exist_ok=True)
        self._supervisor = supervisor or ProcessSupervisor()
        self._policy = policy or CapturePolicy()
        self._fallback = fallback or FallbackCapture()
        self._real_capture = real_capture or FfmpegCapture(
            self._supervisor, ffmpeg_path=ffmpeg_path
        )
        self._min_artifact_bytes = min_artifact_bytes
        self.on_state_change = on_state_change

        self._lock = threading.Lock()
        self._session = RecordingSession()
        logger.info(f"RecordingController initialized, audio directory: {self.audio_dir}")

    @property
    def state(self) -> RecordingState:
        return self._session.state

    @property
    def is_recording(self) -> bool:
        return self._session.state != RecordingState.IDLE

    @property
    def policy(self) -> CapturePolicy:
        return self._policy

    def status(self) -> RecordingStatus:
        session = self._session
        return RecordingStatus(
            recording=session.state != RecordingState.IDLE,
            path=session.artifact_path,
        )

    def start(self) -> Path:
        with self._lock:
            if self._session.state != RecordingState.IDLE:
                raise AlreadyRecordingError()

            path = new_recording_path(self.audio_dir)
            strategy = self._policy.choose(self._real_capture, self._fallback)
            logger.info(f"Starting recording with {strategy.name} capture: {path}")

            try:
                process = self._begin_capture(strategy, path)
            except OSError as e:
                logger.error(f"Error starting recording: {e}", exc_info=True)
                raise RecordingStartError(f"Failed to start recording: {e}") from e

            self._replace_session(
                RecordingSession(
                    state=RecordingState.RECORDING, artifact_path=path, process=process
                )
            )

        logger.info(f"Recording started: {path}")
        return path

    def stop(self) -> Path:
        with self._lock:
            session = self._session
            if session.state != RecordingState.RECORDING:
                raise NotRecordingError()

            process = session.process
            path = session.artifact_path
            # Ownership of the process moves to this call before teardown starts.
            self._replace_session(
                RecordingSession(state=RecordingState.STOPPING, artifact_path=path)
            )

        try:
            if process is not None:
                self._supervisor.terminate(process)
            return self._verify_artifact(path)
        finally:
            with self._lock:
                self._replace_session(RecordingSession())
            logger.info(f"Recording stopped: {path}")

    def _begin_capture(self, strategy, path: Path) -> Optional[CaptureProcess]:
        if strategy is self._fallback:
            return self._fallback.begin(path)

        try:
            return strategy.begin(path)
        except ProcessSpawnError as e:
            logger.error(f"Error with FFmpeg recording, falling back to simulation: {e}")
            return self._fallback.begin(path)

    def _verify_artifact(self, path: Optional[Path]) -> Path:
        if path is None or not path.exists():
            logger.error("Recording file does not exist after stopping recording")
            raise ArtifactMissingError()

        size = path.stat().st_size
        logger.debug(f"Artifact size: {size} bytes")
        if size < self._min_artifact_bytes:
            logger.warning(f"Audio file is very small ({size} bytes), might be corrupted")
        return path

    def _replace_session(self, session: RecordingSession) -> None:
        previous = self._session.state
        self._session = session
        if previous == session.state or not self.on_state_change:
            return
        try:
            self.on_state_change(previous, session.state)
        except Exception as e:
            logger.error(
                f"State change callback failed ({previous.name} -> {session.state.name}): {e}",
                exc_info=True,
            )
