"""Relay between a web chat page and an OpenAI-compatible completion API."""

__version__ = "0.1.0"
