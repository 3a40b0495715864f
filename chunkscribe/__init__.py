"""chunkscribe: record short audio chunks, transcribe, summarize and stream the running log."""

__version__ = "0.1.0"
