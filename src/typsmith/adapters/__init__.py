"""Adapters binding typsmith to external tools (Markdown, Typst, mdBook)."""
