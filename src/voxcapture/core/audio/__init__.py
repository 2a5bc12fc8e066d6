from .devices import AudioDevice, list_devices, pick_capture_device
from .fallback import WavHeader, read_wav_header, synthesize
from .recorder import (
    CapturePolicy,
    FallbackCapture,
    FfmpegCapture,
    RecordingController,
    RecordingSession,
    RecordingState,
    RecordingStatus,
)
from .storage import clear_audio_artifacts, get_audio_dir
from .supervisor import CaptureProcess, ProcessSupervisor

__all__ = [
    "AudioDevice",
    "CaptureProcess",
    "CapturePolicy",
    "FallbackCapture",
    "FfmpegCapture",
    "ProcessSupervisor",
    "RecordingController",
    "RecordingSession",
    "RecordingState",
    "RecordingStatus",
    "WavHeader",
    "clear_audio_artifacts",
    "get_audio_dir",
    "list_devices",
    "pick_capture_device",
    "read_wav_header",
    "synthesize",
]
