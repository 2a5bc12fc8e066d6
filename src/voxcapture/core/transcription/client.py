"""
Transcription client for the OpenAI speech-to-text endpoint.

One artifact, one multipart POST, one hard deadline covering the whole call.
Failures are raised as ``TranscriptionError`` subclasses so the gateway can
report them verbatim.
"""

import json
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Optional, Tuple, Union

import requests

from ...utils.logger import get_logger
from ..errors import (
    ArtifactNotFoundError,
    CredentialMissingError,
    RemoteServiceError,
    RequestTimeoutError,
)
from ..settings.config import (
    DEFAULT_REQUEST_TIMEOUT_S,
    DEFAULT_TRANSCRIPTION_MODEL,
    OPENAI_API_BASE,
)
from ..settings.settings import CredentialProvider

logger = get_logger(__name__)

API_KEY_PREFIX = "sk-"
KEY_CHECK_TIMEOUT_S = 10.0
RESPONSE_CHUNK_BYTES = 8192


@dataclass
class TranscriptionResult:
    source_path: Path
    text: str


def validate_api_key_format(api_key: Optional[str]) -> bool:
    return bool(api_key) and api_key.strip().startswith(API_KEY_PREFIX)


def _loads_or_none(body: bytes) -> Any:
    try:
        return json.loads(body)
    except ValueError:
        return None


def _response_json(response: requests.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None


def _error_message(status_code: int, reason: Optional[str], data: Any) -> str:
    """Prefer the structured ``error.message`` body, else the status reason."""
    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str) and error:
            return error

    return reason or f"HTTP {status_code}"


class TranscriptionClient:
    """
    Submits finished recordings to a remote speech-to-text service.

    Example:
        client = TranscriptionClient(credentials=get_settings(), audio_dir=audio_dir)
        result = client.transcribe("recording-1234.wav")
    """

    def __init__(
        self,
        credentials: CredentialProvider,
        audio_dir: Path,
        api_base: str = OPENAI_API_BASE,
        model: str = DEFAULT_TRANSCRIPTION_MODEL,
        timeout_s: float = DEFAULT_REQUEST_TIMEOUT_S,
        session_factory: Callable[[], requests.Session] = requests.Session,
    ):
        self._credentials = credentials
        self.audio_dir = Path(audio_dir)
        self.api_base = api_base.rstrip("/")
        self.model = model
        self.timeout_s = timeout_s
        self._session_factory = session_factory

    @property
    def endpoint(self) -> str:
        return f"{self.api_base}/audio/transcriptions"

    def resolve_path(self, path: Union[str, Path]) -> Path:
        path = Path(path)
        if path.is_absolute():
            return path
        return self.audio_dir / path

    def transcribe(self, path: Union[str, Path]) -> TranscriptionResult:
        full_path = self.resolve_path(path)
        logger.info(f"Attempting to transcribe audio file: {full_path}")

        if not full_path.is_file():
            logger.error(f"Audio file not found at path: {full_path}")
            raise ArtifactNotFoundError()

        if not self._credentials.has_credential():
            raise CredentialMissingError()
        api_key = self._credentials.get_credential()
        if not api_key:
            raise CredentialMissingError()

        audio_data = full_path.read_bytes()
        logger.debug(f"Sending {len(audio_data)} bytes to {self.endpoint}")

        try:
            with self._session_factory() as session:
                status_code, reason, body = self._post_with_deadline(
                    session, full_path.name, audio_data, api_key
                )
        except requests.Timeout as e:
            logger.error(f"Transcription request timed out after {self.timeout_s}s")
            raise RequestTimeoutError(
                f"Transcription request timed out after {self.timeout_s:g}s"
            ) from e
        except requests.RequestException as e:
            logger.error(f"Transcription request failed: {e}")
            raise RemoteServiceError(f"Transcription request failed: {e}") from e

        text = self._parse_response(status_code, reason, body)
        logger.info(f"Transcription successful: {len(text)} chars")
        return TranscriptionResult(source_path=full_path, text=text)

    def _post_with_deadline(
        self,
        session: requests.Session,
        filename: str,
        audio_data: bytes,
        api_key: str,
    ) -> Tuple[int, Optional[str], bytes]:
        """
        POST the artifact and read the full body within ``timeout_s``.

        The ``timeout`` passed to requests only bounds connect and each socket
        read, so the exchange runs on a daemon thread and the caller stops
        waiting at the deadline. On expiry the response and session are closed
        and the thread drops the connection at its next read.

        Raises:
            requests.Timeout: The deadline passed before the body was read
        """
        outcome: dict = {}
        cancelled = threading.Event()

        def exchange() -> None:
            response = None
            try:
                response = session.post(
                    self.endpoint,
                    headers={"Authorization": f"Bearer {api_key}"},
                    files={"file": (filename, audio_data)},
                    data={"model": self.model},
                    timeout=self.timeout_s,
                    stream=True,
                )
                outcome["response"] = response
                chunks = []
                for chunk in response.iter_content(chunk_size=RESPONSE_CHUNK_BYTES):
                    if cancelled.is_set():
                        return
                    chunks.append(chunk)
                outcome["result"] = (response.status_code, response.reason, b"".join(chunks))
            except Exception as e:
                outcome["error"] = e
            finally:
                if response is not None:
                    response.close()

        worker = threading.Thread(target=exchange, name="transcription-request", daemon=True)
        worker.start()
        worker.join(self.timeout_s)

        if worker.is_alive():
            cancelled.set()
            response = outcome.get("response")
            if response is not None:
                response.close()
            session.close()
            raise requests.Timeout(f"No complete response within {self.timeout_s:g}s")

        if "error" in outcome:
            raise outcome["error"]
        return outcome["result"]

    @staticmethod
    def _parse_response(status_code: int, reason: Optional[str], body: bytes) -> str:
        if status_code >= 400:
            message = _error_message(status_code, reason, _loads_or_none(body))
            logger.error(f"Transcription service returned {status_code}: {message}")
            raise RemoteServiceError(f"OpenAI API error: {message}")

        try:
            data = json.loads(body)
        except ValueError as e:
            raise RemoteServiceError("OpenAI API error: response is not valid JSON") from e

        if not isinstance(data, dict) or not isinstance(data.get("text"), str):
            raise RemoteServiceError("OpenAI API error: response has no transcript text")
        return data["text"]

    def test_api_key(self, api_key: str) -> Tuple[bool, str]:
        """Check a key against the models endpoint. Returns ``(valid, error)``."""
        if not validate_api_key_format(api_key):
            return False, "Invalid API key format. OpenAI API keys start with 'sk-'"

        try:
            with self._session_factory() as session:
                response = session.get(
                    f"{self.api_base}/models",
                    headers={"Authorization": f"Bearer {api_key.strip()}"},
                    timeout=KEY_CHECK_TIMEOUT_S,
                )
        except requests.RequestException as e:
            logger.warning(f"API key check failed: {e}")
            return False, f"Could not reach OpenAI: {e}"

        if response.ok:
            return True, ""
        return False, _error_message(response.status_code, response.reason, _response_json(response))
