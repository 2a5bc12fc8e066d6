import re
import shutil
import subprocess
from dataclasses import dataclass
from typing import List, Optional

from ...utils.logger import get_logger
from ...utils.platform import PlatformProfile, get_platform_profile
from ..errors import DeviceDiscoveryUnavailable

logger = get_logger(__name__)

LIST_DEVICES_TIMEOUT_S = 5

# Order matters: the first fragment found in a device name wins.
MICROPHONE_KEYWORDS = ("Microphone", "Mic", "Audio", "Input", "Headset")
CAPTURE_KEYWORDS = ("Microphone", "Mic", "Headset")

_QUOTED_NAME = re.compile(r'"([^"]+)"')
_INDEXED_NAME = re.compile(r"\]\s*\[(\d+)\]\s*(.+?)\s*$")


@dataclass(frozen=True)
class AudioDevice:
    name: str
    is_likely_microphone: bool = False
    matched_keyword: Optional[str] = None

    @classmethod
    def from_name(cls, name: str) -> "AudioDevice":
        keyword = match_microphone_keyword(name)
        return cls(name=name, is_likely_microphone=keyword is not None, matched_keyword=keyword)

    def to_dict(self) -> dict:
        return {"name": self.name, "is_likely_microphone": self.is_likely_microphone}


def match_microphone_keyword(name: str) -> Optional[str]:
    for keyword in MICROPHONE_KEYWORDS:
        if keyword in name:
            return keyword
    return None


def find_ffmpeg(ffmpeg_path: Optional[str] = None) -> Optional[str]:
    if ffmpeg_path:
        return ffmpeg_path if shutil.which(ffmpeg_path) else None
    return shutil.which("ffmpeg")


def parse_device_listing(output: str, profile: PlatformProfile) -> List[AudioDevice]:
    """Extract capture devices from ffmpeg's ``-list_devices`` diagnostics."""
    devices: List[AudioDevice] = []
    in_section = profile.section_header is None

    for line in output.splitlines():
        if profile.section_header is not None:
            if profile.section_header in line:
                in_section = True
                continue
            if not in_section:
                continue
            # The next "... devices:" header closes the audio section.
            if line.rstrip().endswith("devices:"):
                in_section = False
                continue
            match = _INDEXED_NAME.search(line)
            if match:
                devices.append(AudioDevice.from_name(match.group(2)))
            continue

        if profile.device_marker not in line:
            continue
        match = _QUOTED_NAME.search(line)
        if match:
            devices.append(AudioDevice.from_name(match.group(1)))

    return devices


def _run_device_listing(ffmpeg: str, profile: PlatformProfile) -> str:
    args = [ffmpeg, *profile.list_device_args()]
    logger.debug(f"Listing audio devices with command: {' '.join(args)}")

    try:
        # ffmpeg exits non-zero after listing; the device list is on stderr.
        result = subprocess.run(
            args,
            capture_output=True,
            text=True,
            timeout=LIST_DEVICES_TIMEOUT_S,
        )
    except subprocess.TimeoutExpired as e:
        raise DeviceDiscoveryUnavailable(f"Device listing timed out: {e}") from e
    except OSError as e:
        raise DeviceDiscoveryUnavailable(f"Failed to run ffmpeg: {e}") from e

    return result.stderr or ""


def list_devices(
    ffmpeg_path: Optional[str] = None,
    profile: Optional[PlatformProfile] = None,
) -> List[AudioDevice]:
    ffmpeg = find_ffmpeg(ffmpeg_path)
    if ffmpeg is None:
        logger.info("Cannot list audio devices: FFmpeg not found")
        return []

    profile = profile or get_platform_profile()

    try:
        output = _run_device_listing(ffmpeg, profile)
    except DeviceDiscoveryUnavailable as e:
        logger.warning(str(e))
        return []

    devices = parse_device_listing(output, profile)
    for device in devices:
        if device.is_likely_microphone:
            logger.debug(
                f"Found likely microphone device: {device.name} (matched '{device.matched_keyword}')"
            )
    logger.info(f"Detected {len(devices)} audio device(s)")
    return devices


def pick_capture_device(devices: List[AudioDevice]) -> Optional[AudioDevice]:
    """Prefer a device that looks like a microphone, else the first one."""
    for device in devices:
        if any(keyword in device.name for keyword in CAPTURE_KEYWORDS):
            return device
    return devices[0] if devices else None
