"""Rate-limited chat proxy for the Gemini text-generation API."""

__version__ = "1.0.0"
