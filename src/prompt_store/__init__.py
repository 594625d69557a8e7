"""prompt-store: a local store for titled, tagged prompts."""

__version__ = "1.0.0"
