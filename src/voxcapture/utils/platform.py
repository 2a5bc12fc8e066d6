"""Platform-specific capture profiles for cross-platform compatibility."""

import platform
import subprocess
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from .logger import get_logger

logger = get_logger(__name__)

TASKKILL_TIMEOUT_S = 10


def get_platform() -> str:
    system = platform.system()
    if system == "Darwin":
        return "macos"
    return system.lower()


def taskkill_process_tree(pid: int) -> None:
    """Force-kill ``pid`` and all of its children (Windows only)."""
    logger.info(f"Using taskkill to terminate process tree for PID: {pid}")
    subprocess.run(
        ["taskkill", "/F", "/T", "/PID", str(pid)],
        capture_output=True,
        check=True,
        timeout=TASKKILL_TIMEOUT_S,
    )


@dataclass(frozen=True)
class PlatformProfile:
    """How ffmpeg is driven and torn down on one host platform family.

    ``device_marker`` selects candidate lines from the device listing. When
    ``section_header`` is set, only lines after that header are candidates
    and names are read from the ``[index] name`` form instead of quotes.
    ``kill_process_tree`` is run after the graceful stop on platforms where a
    single signal does not reliably clean up child processes.
    """

    name: str
    input_format: str
    default_capture_device: str
    capture_device_template: str = "{device}"
    device_marker: str = "(audio)"
    section_header: Optional[str] = None
    kill_process_tree: Optional[Callable[[int], None]] = None

    def list_device_args(self) -> List[str]:
        return [
            "-hide_banner",
            "-list_devices",
            "true",
            "-f",
            self.input_format,
            "-i",
            "dummy",
        ]

    def capture_input_args(self, device: Optional[str] = None) -> List[str]:
        target = device or self.default_capture_device
        return ["-f", self.input_format, "-i", self.capture_device_template.format(device=target)]


PLATFORM_PROFILES: Dict[str, PlatformProfile] = {
    "windows": PlatformProfile(
        name="windows",
        input_format="dshow",
        default_capture_device="Microphone Array (Realtek(R) Audio)",
        capture_device_template="audio={device}",
        kill_process_tree=taskkill_process_tree,
    ),
    "macos": PlatformProfile(
        name="macos",
        input_format="avfoundation",
        default_capture_device="0",
        capture_device_template=":{device}",
        device_marker="]",
        section_header="AVFoundation audio devices",
    ),
    "linux": PlatformProfile(
        name="linux",
        input_format="alsa",
        default_capture_device="default",
    ),
}

_active_profile: Optional[PlatformProfile] = None


def get_platform_profile(name: Optional[str] = None) -> PlatformProfile:
    """Resolve the profile for ``name`` (or the host) once and cache it.

    Unknown platforms use the Linux profile.
    """
    global _active_profile

    if name is not None:
        return PLATFORM_PROFILES.get(name, PLATFORM_PROFILES["linux"])

    if _active_profile is None:
        system = get_platform()
        _active_profile = PLATFORM_PROFILES.get(system, PLATFORM_PROFILES["linux"])
        logger.debug(f"Resolved platform profile: {_active_profile.name}")
    return _active_profile
