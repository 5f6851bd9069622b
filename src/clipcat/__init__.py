"""clipcat: a catalog of clipped notes in a Markdown vault."""

__version__ = "0.1.0"
