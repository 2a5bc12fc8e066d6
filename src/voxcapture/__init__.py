# voxcapture - Voice capture and transcription core

"""
Recording session orchestration and remote speech-to-text transcription.
Supervises ffmpeg capture (or a silent fallback artifact) and reports
progress to a Qt UI layer through signals.
"""

__version__ = "0.1.0"
__app_name__ = "voxcapture"
