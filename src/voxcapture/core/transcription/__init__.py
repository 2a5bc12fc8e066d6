from .client import TranscriptionClient, TranscriptionResult, validate_api_key_format

__all__ = ["TranscriptionClient", "TranscriptionResult", "validate_api_key_format"]
