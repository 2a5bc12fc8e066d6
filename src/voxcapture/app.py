"""Application runtime."""

import argparse
import signal
import sys
from typing import Optional

from PySide6.QtCore import QCoreApplication, QObject, QTimer

from voxcapture import __app_name__, __version__
from voxcapture.core.settings import get_settings
from voxcapture.gateway import RecordingGateway, create_gateway
from voxcapture.utils.logger import get_logger, shutdown_logging

logger = get_logger(__name__)


class CaptureApp(QObject):
    """Records one session, transcribes it, prints the transcript and exits."""

    def __init__(self, gateway: RecordingGateway, duration_s: float, transcribe: bool = True):
        super().__init__()
        self._gateway = gateway
        self._duration_ms = int(duration_s * 1000)
        self._transcribe = transcribe
        self.exit_code = 0

        self._gateway.recording_stopped.connect(self._on_recording_stopped)
        self._gateway.transcription_started.connect(
            lambda: logger.info("Transcription started")
        )
        self._gateway.transcription_completed.connect(self._on_transcription_complete)
        self._gateway.transcription_error.connect(self._on_transcription_error)
        self._gateway.api_key_required.connect(
            lambda: logger.warning("OpenAI API key required; set api_key in settings.json or OPENAI_API_KEY")
        )

    def run(self) -> None:
        logger.info(f"Starting {__app_name__} v{__version__}")
        result = self._gateway.start_recording()
        if not result["success"]:
            logger.error(f"Recording error: {result['error']}")
            self._finish(1)
            return

        logger.info(f"Recording to {result['path']} for {self._duration_ms / 1000:.1f}s")
        QTimer.singleShot(self._duration_ms, self._stop)

    def _stop(self) -> None:
        worker = self._gateway.submit(self._gateway.stop_recording)
        worker.result_ready.connect(self._on_stop_result)

    def _on_stop_result(self, result: dict) -> None:
        if not result["success"]:
            logger.error(f"Stop recording failed: {result['error']}")
            self._finish(1)
        elif not self._transcribe:
            self._finish(0)

    def _on_recording_stopped(self, path: str) -> None:
        logger.info(f"Recording stopped: {path}")
        if self._transcribe:
            self._gateway.submit(self._gateway.transcribe_audio, path)

    def _on_transcription_complete(self, text: str) -> None:
        print(text)
        self._finish(0)

    def _on_transcription_error(self, message: str) -> None:
        logger.error(f"Transcription failed: {message}")
        self._finish(1)

    def _finish(self, code: int) -> None:
        self.exit_code = code
        QCoreApplication.quit()


def _parse_args(argv: Optional[list] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog=__app_name__, description="Record and transcribe one session")
    parser.add_argument("--duration", type=float, default=5.0, help="Seconds to record")
    parser.add_argument("--no-transcribe", action="store_true", help="Only record the artifact")
    parser.add_argument("--list-devices", action="store_true", help="List capture devices and exit")
    parser.add_argument("--cleanup", action="store_true", help="Delete stored recordings and exit")
    return parser.parse_args(argv)


def main(argv: Optional[list] = None):
    args = _parse_args(argv)

    app = QCoreApplication(sys.argv[:1])
    app.setApplicationName(__app_name__)
    signal.signal(signal.SIGINT, lambda *args: QCoreApplication.quit())

    gateway = create_gateway(get_settings())

    if args.list_devices:
        for device in gateway.list_audio_devices():
            marker = "*" if device["is_likely_microphone"] else " "
            print(f"{marker} {device['name']}")
        sys.exit(0)

    if args.cleanup:
        result = gateway.cleanup_audio_directory()
        sys.exit(0 if result["success"] else 1)

    capture_app = CaptureApp(gateway, args.duration, transcribe=not args.no_transcribe)
    QTimer.singleShot(0, capture_app.run)
    app.exec()

    gateway.wait_for_workers()
    logger.info("Application shutdown complete")
    shutdown_logging()
    sys.exit(capture_app.exit_code)


if __name__ == "__main__":
    main()
