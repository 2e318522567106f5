"""TikBlok video search index and comment summaries."""

__version__ = "1.0.0"
