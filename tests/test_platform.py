"""Tests for platform detection and capture profiles."""

from unittest.mock import patch

import pytest

from voxcapture.utils import platform as platform_module
from voxcapture.utils.platform import (
    PLATFORM_PROFILES,
    get_platform,
    get_platform_profile,
    taskkill_process_tree,
)


@pytest.mark.parametrize(
    "system,expected",
    [("Darwin", "macos"), ("Windows", "windows"), ("Linux", "linux")],
)
def test_get_platform(system, expected):
    with patch("voxcapture.utils.platform.platform.system", return_value=system):
        assert get_platform() == expected


def test_unknown_platform_uses_linux_profile():
    assert get_platform_profile("freebsd") is PLATFORM_PROFILES["linux"]


def test_host_profile_is_cached(monkeypatch):
    monkeypatch.setattr(platform_module, "_active_profile", None)
    with patch("voxcapture.utils.platform.get_platform", return_value="windows") as mock_get:
        first = get_platform_profile()
        second = get_platform_profile()

    assert first is second is PLATFORM_PROFILES["windows"]
    mock_get.assert_called_once()


def test_only_windows_kills_process_tree():
    assert PLATFORM_PROFILES["windows"].kill_process_tree is taskkill_process_tree
    assert PLATFORM_PROFILES["macos"].kill_process_tree is None
    assert PLATFORM_PROFILES["linux"].kill_process_tree is None


def test_list_device_args():
    assert get_platform_profile("macos").list_device_args() == [
        "-hide_banner", "-list_devices", "true", "-f", "avfoundation", "-i", "dummy",
    ]
