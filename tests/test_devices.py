"""
Tests for ffmpeg-based audio device discovery.

Uses mocking to avoid requiring ffmpeg or audio hardware.
"""

import subprocess
from unittest.mock import MagicMock, patch

import pytest

from voxcapture.core.audio.devices import (
    AudioDevice,
    list_devices,
    match_microphone_keyword,
    parse_device_listing,
    pick_capture_device,
)
from voxcapture.utils.platform import get_platform_profile

DSHOW_OUTPUT = """\
[dshow @ 000001] DirectShow video devices (some may be both video and audio devices)
[dshow @ 000001]  "Integrated Camera" (video)
[dshow @ 000001]     Alternative name "@device_pnp_\\\\?\\usb#vid_04f2"
[dshow @ 000001] DirectShow audio devices
[dshow @ 000001]  "Microphone Array (Realtek(R) Audio)" (audio)
[dshow @ 000001]     Alternative name "@device_cm_{33D9A762}\\wave_{A1B2}"
[dshow @ 000001]  "Stereo Mix (Realtek(R) Audio)" (audio)
[dshow @ 000001]  "Line In" (audio)
dummy: Immediate exit requested
"""

AVFOUNDATION_OUTPUT = """\
[AVFoundation indev @ 0x7f8] AVFoundation video devices:
[AVFoundation indev @ 0x7f8] [0] FaceTime HD Camera
[AVFoundation indev @ 0x7f8] [1] Capture screen 0
[AVFoundation indev @ 0x7f8] AVFoundation audio devices:
[AVFoundation indev @ 0x7f8] [0] MacBook Pro Microphone
[AVFoundation indev @ 0x7f8] [1] ZoomAudioDevice
dummy: Input/output error
"""


class TestMicrophoneKeywords:
    def test_first_keyword_in_order_wins(self):
        assert match_microphone_keyword("USB Mic Input") == "Mic"
        assert match_microphone_keyword("Microphone (USB Audio)") == "Microphone"

    def test_case_sensitive(self):
        assert match_microphone_keyword("usb microphone") is None

    def test_headset(self):
        device = AudioDevice.from_name("Headset (Bluetooth)")
        assert device.is_likely_microphone is True
        assert device.matched_keyword == "Headset"

    def test_no_match(self):
        device = AudioDevice.from_name("Line In")
        assert device.is_likely_microphone is False
        assert device.matched_keyword is None


class TestParseDeviceListing:
    def test_dshow_audio_lines_only(self):
        devices = parse_device_listing(DSHOW_OUTPUT, get_platform_profile("windows"))

        assert [d.name for d in devices] == [
            "Microphone Array (Realtek(R) Audio)",
            "Stereo Mix (Realtek(R) Audio)",
            "Line In",
        ]
        assert [d.is_likely_microphone for d in devices] == [True, True, False]
        assert devices[1].matched_keyword == "Audio"

    def test_avfoundation_audio_section(self):
        devices = parse_device_listing(AVFOUNDATION_OUTPUT, get_platform_profile("macos"))

        assert [d.name for d in devices] == ["MacBook Pro Microphone", "ZoomAudioDevice"]
        assert devices[0].matched_keyword == "Microphone"

    def test_empty_output(self):
        assert parse_device_listing("", get_platform_profile("linux")) == []


class TestListDevices:
    @patch("voxcapture.core.audio.devices.shutil.which", return_value=None)
    def test_missing_ffmpeg_returns_empty(self, mock_which):
        with patch("voxcapture.core.audio.devices.subprocess.run") as mock_run:
            assert list_devices() == []
            mock_run.assert_not_called()

    @patch("voxcapture.core.audio.devices.shutil.which", return_value="/usr/bin/ffmpeg")
    @patch("voxcapture.core.audio.devices.subprocess.run")
    def test_nonzero_exit_is_not_failure(self, mock_run, mock_which):
        mock_run.return_value = MagicMock(returncode=1, stderr=DSHOW_OUTPUT, stdout="")

        devices = list_devices(profile=get_platform_profile("windows"))

        assert len(devices) == 3
        args = mock_run.call_args[0][0]
        assert args[0] == "/usr/bin/ffmpeg"
        assert args[1:] == ["-hide_banner", "-list_devices", "true", "-f", "dshow", "-i", "dummy"]
        assert mock_run.call_args[1]["timeout"] == 5

    @patch("voxcapture.core.audio.devices.shutil.which", return_value="/usr/bin/ffmpeg")
    @patch("voxcapture.core.audio.devices.subprocess.run")
    def test_timeout_returns_empty(self, mock_run, mock_which):
        mock_run.side_effect = subprocess.TimeoutExpired(cmd="ffmpeg", timeout=5)
        assert list_devices(profile=get_platform_profile("windows")) == []

    @patch("voxcapture.core.audio.devices.shutil.which", return_value="/usr/bin/ffmpeg")
    @patch("voxcapture.core.audio.devices.subprocess.run")
    def test_spawn_failure_returns_empty(self, mock_run, mock_which):
        mock_run.side_effect = PermissionError("not executable")
        assert list_devices(profile=get_platform_profile("windows")) == []

    @patch("voxcapture.core.audio.devices.subprocess.run")
    def test_explicit_ffmpeg_path_is_used(self, mock_run):
        mock_run.return_value = MagicMock(returncode=1, stderr="", stdout="")
        with patch(
            "voxcapture.core.audio.devices.shutil.which", return_value="/opt/ffmpeg/bin/ffmpeg"
        ) as mock_which:
            assert list_devices("/opt/ffmpeg/bin/ffmpeg") == []
            mock_which.assert_called_once_with("/opt/ffmpeg/bin/ffmpeg")
        assert mock_run.call_args[0][0][0] == "/opt/ffmpeg/bin/ffmpeg"


class TestPickCaptureDevice:
    def test_prefers_microphone_names(self):
        devices = [
            AudioDevice.from_name("Stereo Mix (Realtek(R) Audio)"),
            AudioDevice.from_name("Headset (Bluetooth)"),
        ]
        assert pick_capture_device(devices).name == "Headset (Bluetooth)"

    def test_falls_back_to_first_device(self):
        devices = [AudioDevice.from_name("Line In"), AudioDevice.from_name("Aux")]
        assert pick_capture_device(devices).name == "Line In"

    def test_empty(self):
        assert pick_capture_device([]) is None


@pytest.mark.parametrize(
    "name,expected",
    [
        ("windows", ["-f", "dshow", "-i", "audio=Headset"]),
        ("macos", ["-f", "avfoundation", "-i", ":Headset"]),
        ("linux", ["-f", "alsa", "-i", "Headset"]),
    ],
)
def test_capture_input_args_per_platform(name, expected):
    assert get_platform_profile(name).capture_input_args("Headset") == expected


def test_capture_input_args_default_device():
    assert get_platform_profile("macos").capture_input_args() == ["-f", "avfoundation", "-i", ":0"]
    assert get_platform_profile("linux").capture_input_args() == ["-f", "alsa", "-i", "default"]
