"""Preprocessors that rewrite a book's chapters before rendering."""

__all__ = ["command", "context", "index", "link_parse", "links"]