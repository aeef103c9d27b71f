"""codeloop: natural-language goals turned into planned, previewable tool runs."""

__version__ = "0.1.0"
