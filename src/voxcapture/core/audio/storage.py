import tempfile
import uuid
from pathlib import Path
from typing import List, Optional, Tuple

from platformdirs import user_data_path

from ...utils.logger import get_logger

logger = get_logger(__name__)

APP_NAME = "voxcapture"
RECORDING_PREFIX = "recording-"
RECORDING_SUFFIX = ".wav"
INLINE_PREFIX = "web-audio-"


def get_audio_dir(base_dir: Optional[Path] = None) -> Path:
    """Directory holding session artifacts, created on demand."""
    audio_dir = (base_dir or user_data_path(APP_NAME, appauthor=False)) / "audio"
    audio_dir.mkdir(parents=True, exist_ok=True)
    return audio_dir


def get_inline_temp_dir() -> Path:
    temp_dir = Path(tempfile.gettempdir()) / APP_NAME
    temp_dir.mkdir(parents=True, exist_ok=True)
    return temp_dir


def new_recording_path(audio_dir: Path) -> Path:
    return audio_dir / f"{RECORDING_PREFIX}{uuid.uuid4()}{RECORDING_SUFFIX}"


def new_inline_path(extension: str = ".webm") -> Path:
    return get_inline_temp_dir() / f"{INLINE_PREFIX}{uuid.uuid4()}{extension}"


def remove_file(path: Path) -> bool:
    """Delete ``path`` if it exists. Returns False only when deletion failed."""
    try:
        path.unlink(missing_ok=True)
        return True
    except OSError as e:
        logger.error(f"Error deleting temporary file {path}: {e}")
        return False


def clear_audio_artifacts(audio_dir: Path) -> Tuple[bool, List[str]]:
    """Remove every ``.wav`` file from ``audio_dir``.

    Returns ``(success, errors)``; a failure on one file does not stop the
    others from being removed.
    """
    errors: List[str] = []

    if not audio_dir.exists():
        return True, []

    removed = 0
    for path in sorted(audio_dir.glob(f"*{RECORDING_SUFFIX}")):
        try:
            path.unlink()
            removed += 1
        except OSError as e:
            error_msg = f"Failed to delete {path}: {e}"
            logger.error(error_msg)
            errors.append(error_msg)

    logger.info(f"Audio directory cleaned: {removed} file(s) removed from {audio_dir}")
    return len(errors) == 0, errors
