"""Book configuration and chapter preprocessing for markdown books."""

__version__ = "0.4.9"
__all__ = ["config", "html_config", "preprocess"]