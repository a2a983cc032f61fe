"""charfreq — cached character-frequency statistics for source repositories."""

__version__ = "0.1.0"
