"""
Command/event boundary between the recording core and the UI layer.

Every command returns a plain dict, including on failure, and anything that
finishes asynchronously is reported through Qt signals so the UI never has to
poll.
"""

import base64
import binascii
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from PySide6.QtCore import QObject, QThread, Signal

from .core.audio import RecordingController, clear_audio_artifacts, list_devices
from .core.audio.recorder import CapturePolicy
from .core.audio.storage import new_inline_path, remove_file
from .core.audio.supervisor import ProcessSupervisor
from .core.errors import CredentialMissingError, VoxCaptureError
from .core.settings import CredentialProvider, Settings
from .core.transcription import TranscriptionClient
from .utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_INLINE_EXTENSION = ".webm"

MIME_EXTENSIONS = {
    "audio/webm": ".webm",
    "audio/wav": ".wav",
    "audio/wave": ".wav",
    "audio/x-wav": ".wav",
    "audio/mpeg": ".mp3",
    "audio/mp4": ".m4a",
    "audio/ogg": ".ogg",
}


def decode_data_url(payload: str) -> Tuple[bytes, str]:
    """Decode ``data:<mime>;base64,<data>`` into bytes and a file extension.

    A payload without a ``data:`` prefix is decoded as bare base64.
    Raises ``ValueError`` for anything that is not valid base64.
    """
    if not isinstance(payload, str) or not payload:
        raise ValueError("Audio payload is empty")

    extension = DEFAULT_INLINE_EXTENSION
    data = payload
    if payload.startswith("data:"):
        header, sep, data = payload.partition(",")
        if not sep:
            raise ValueError("Malformed data URL: missing ',' separator")
        mime = header[len("data:"):].split(";", 1)[0].strip().lower()
        extension = MIME_EXTENSIONS.get(mime, DEFAULT_INLINE_EXTENSION)

    # Wrapped base64 (MIME line breaks) is accepted.
    data = "".join(data.split())
    try:
        audio = base64.b64decode(data, validate=True)
    except binascii.Error as e:
        raise ValueError(f"Invalid base64 audio payload: {e}") from e

    if not audio:
        raise ValueError("Audio payload is empty")
    return audio, extension


def _error_response(error: Exception) -> dict:
    return {"success": False, "error": str(error) or type(error).__name__}


class CommandWorkerThread(QThread):
    """
    Runs one gateway command off the UI thread.

    Signals:
        result_ready: Emitted with the command's response dict
    """

    result_ready = Signal(object)

    def __init__(self, command: Callable[..., dict], *args, parent=None):
        super().__init__(parent)
        self._command = command
        self._args = args

    def run(self):
        try:
            result = self._command(*self._args)
        except Exception as e:
            logger.exception(f"Background command failed: {e}")
            result = _error_response(e)
        self.result_ready.emit(result)


class RecordingGateway(QObject):
    """
    Maps UI commands onto the recording controller and transcription client.

    Signals:
        transcription_started: A transcription request was accepted
        transcription_completed: Transcript text is available (text)
        transcription_error: A transcription failed (message)
        recording_stopped: A session ended and its artifact is ready (path)
        api_key_required: No API key is configured
    """

    transcription_started = Signal()
    transcription_completed = Signal(str)
    transcription_error = Signal(str)
    recording_stopped = Signal(str)
    api_key_required = Signal()

    def __init__(
        self,
        controller: RecordingController,
        client: TranscriptionClient,
        ffmpeg_path: Optional[str] = None,
        parent=None,
    ):
        super().__init__(parent)
        self._controller = controller
        self._client = client
        self._ffmpeg_path = ffmpeg_path
        self._workers: List[CommandWorkerThread] = []

    @property
    def controller(self) -> RecordingController:
        return self._controller

    # Recording commands

    def start_recording(self) -> dict:
        try:
            path = self._controller.start()
        except VoxCaptureError as e:
            logger.warning(f"Start recording rejected: {e}")
            return _error_response(e)
        except Exception as e:
            logger.error(f"Error starting audio recording: {e}", exc_info=True)
            return _error_response(e)
        return {"success": True, "path": str(path)}

    def stop_recording(self) -> dict:
        try:
            path = self._controller.stop()
        except VoxCaptureError as e:
            logger.warning(f"Stop recording failed: {e}")
            return _error_response(e)
        except Exception as e:
            logger.error(f"Error stopping audio recording: {e}", exc_info=True)
            return _error_response(e)

        self.recording_stopped.emit(str(path))
        return {"success": True, "path": str(path)}

    def get_recording_status(self) -> dict:
        return self._controller.status().to_dict()

    def list_audio_devices(self) -> List[dict]:
        return [device.to_dict() for device in list_devices(self._ffmpeg_path)]

    def cleanup_audio_directory(self) -> dict:
        success, errors = clear_audio_artifacts(self._controller.audio_dir)
        return {"success": success, "errors": errors}

    # Transcription commands

    def transcribe_audio(self, audio_path: str) -> dict:
        self.transcription_started.emit()
        return self._transcribe(audio_path)

    def transcribe_inline_payload(self, data_url: str) -> dict:
        self.transcription_started.emit()
        temp_path: Optional[Path] = None

        try:
            audio, extension = decode_data_url(data_url)
            logger.info(f"Received inline audio payload: {len(audio)} bytes")
            temp_path = new_inline_path(extension)
            temp_path.write_bytes(audio)
            return self._transcribe(temp_path)
        except (ValueError, OSError) as e:
            logger.error(f"Error preparing inline audio: {e}")
            return self._transcription_failed(e)
        finally:
            if temp_path is not None and remove_file(temp_path):
                logger.debug(f"Temporary file deleted: {temp_path}")

    def _transcribe(self, audio_path) -> dict:
        try:
            result = self._client.transcribe(audio_path)
        except CredentialMissingError as e:
            self.api_key_required.emit()
            return self._transcription_failed(e)
        except VoxCaptureError as e:
            return self._transcription_failed(e)
        except Exception as e:
            logger.error(f"Error transcribing audio: {e}", exc_info=True)
            return self._transcription_failed(e)

        self.transcription_completed.emit(result.text)
        return {"success": True, "text": result.text}

    def _transcription_failed(self, error: Exception) -> dict:
        response = _error_response(error)
        self.transcription_error.emit(response["error"])
        return response

    # Background execution

    def submit(self, command: Callable[..., dict], *args) -> CommandWorkerThread:
        """Run ``command(*args)`` on a worker thread; connect to ``result_ready``."""
        worker = CommandWorkerThread(command, *args, parent=self)
        worker.finished.connect(lambda: self._release_worker(worker))
        self._workers.append(worker)
        worker.start()
        return worker

    def _release_worker(self, worker: CommandWorkerThread) -> None:
        if worker in self._workers:
            self._workers.remove(worker)
        worker.deleteLater()

    def wait_for_workers(self, timeout_ms: int = 5000) -> None:
        for worker in list(self._workers):
            worker.wait(timeout_ms)


def create_gateway(settings: Settings, credentials: Optional[CredentialProvider] = None) -> RecordingGateway:
    """Build a gateway wired from persisted settings."""
    supervisor = ProcessSupervisor(flush_grace_s=settings.flush_grace_s)
    controller = RecordingController(
        supervisor=supervisor,
        policy=CapturePolicy(real_capture_enabled=settings.real_capture_enabled),
        ffmpeg_path=settings.ffmpeg_path,
    )
    client = TranscriptionClient(
        credentials=credentials or settings,
        audio_dir=controller.audio_dir,
        api_base=settings.api_base_url,
        model=settings.transcription_model,
        timeout_s=settings.request_timeout_s,
    )
    return RecordingGateway(controller, client, ffmpeg_path=settings.ffmpeg_path)
