"""Exception hierarchy for the transcription pipeline."""


class TranscriptProError(Exception):
    """Base error for transcript_pro."""


class FileValidationError(TranscriptProError):
    """Raised at intake when a file is too large or of an unsupported type."""


class AudioDecodeError(TranscriptProError):
    """Raised when ffmpeg/ffprobe cannot decode the input media."""


class AudioTooLargeError(AudioDecodeError):
    """Raised when a file exceeds the local decode ceiling.

    The orchestrator catches this to switch to whole-file submission.
    """

    def __init__(self, size_bytes: int, limit_bytes: int):
        super().__init__(
            f"File too large for local processing: {size_bytes} bytes > {limit_bytes} bytes"
        )
        self.size_bytes = size_bytes
        self.limit_bytes = limit_bytes


class MissingCredentialsError(TranscriptProError):
    """Raised when an API key or database credential is not configured."""


class TranscriptionError(TranscriptProError):
    """Raised when the whole-file transcription path fails."""


class PersistenceError(TranscriptProError):
    """Raised when the database rejects an upload."""


class PipelineBusyError(TranscriptProError):
    """Raised when a session pipeline is started while another is running."""
