"""FetchForge: a download task orchestrator driving yt-dlp."""

__version__ = "0.1.0"
