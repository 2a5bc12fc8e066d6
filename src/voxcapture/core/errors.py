"""Error taxonomy for recording and transcription.

Every error carries a stable ``code`` so the gateway and UI can react to the
kind of failure without parsing messages.
"""


class VoxCaptureError(Exception):
    code = "VOXCAPTURE_ERROR"
    default_message = "Unexpected audio error"

    def __init__(self, message: str = ""):
        super().__init__(message or self.default_message)


class RecordingError(VoxCaptureError):
    code = "RECORDING_ERROR"


class AlreadyRecordingError(RecordingError):
    code = "ALREADY_RECORDING"
    default_message = "Already recording"


class NotRecordingError(RecordingError):
    code = "NOT_RECORDING"
    default_message = "Not currently recording"


class RecordingStartError(RecordingError):
    code = "RECORDING_START_FAILED"
    default_message = "Failed to start recording"


class ArtifactMissingError(RecordingError):
    code = "ARTIFACT_MISSING_AFTER_STOP"
    default_message = "Recording file not found after stopping"


class DeviceDiscoveryUnavailable(VoxCaptureError):
    """Raised internally when ffmpeg cannot list devices; never escapes discovery."""

    code = "DEVICE_DISCOVERY_UNAVAILABLE"
    default_message = "Audio device discovery unavailable"


class ProcessSpawnError(VoxCaptureError):
    code = "PROCESS_SPAWN_FAILED"
    default_message = "Failed to start capture process"


class ProcessTerminationError(VoxCaptureError):
    """Logged by the supervisor, never propagated."""

    code = "PROCESS_TERMINATION_FAILED"
    default_message = "Failed to terminate capture process"


class TranscriptionError(VoxCaptureError):
    code = "TRANSCRIPTION_ERROR"
    default_message = "Failed to transcribe audio"


class ArtifactNotFoundError(TranscriptionError):
    code = "ARTIFACT_NOT_FOUND"
    default_message = "Audio file not found"


class CredentialMissingError(TranscriptionError):
    code = "CREDENTIAL_MISSING"
    default_message = "OpenAI API key not configured"


class RequestTimeoutError(TranscriptionError):
    code = "REQUEST_TIMEOUT"
    default_message = "Transcription request timed out"


class RemoteServiceError(TranscriptionError):
    code = "REMOTE_SERVICE_ERROR"
    default_message = "Transcription service error"
