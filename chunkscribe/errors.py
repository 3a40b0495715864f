"""Failure types raised by a capture cycle and the durable log."""


class PipelineError(Exception):
    """A stage of a capture cycle failed; the running loop stops."""

    stage = "cycle"


class CaptureError(PipelineError):
    """The capture subprocess could not be spawned, exited non-zero or produced no audio."""

    stage = "capture"


class TranscriptionError(PipelineError):
    """The speech-to-text service failed or returned something unreadable."""

    stage = "transcribe"


class SummarizationError(PipelineError):
    """The chat service failed or returned something unreadable."""

    stage = "summarize"


class MissingCredentialError(PipelineError):
    """An external call was attempted without its API key."""

    stage = "credentials"


class LogWriteError(PipelineError):
    """The durable log could not be written (local storage, not the network)."""

    stage = "log"
