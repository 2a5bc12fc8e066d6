"""Core functionality for voxcapture: recording, transcription and settings."""
