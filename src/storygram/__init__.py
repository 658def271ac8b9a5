"""Turn long PDF documents into batches of generated social media posts."""

__version__ = "0.1.0"
