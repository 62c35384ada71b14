"""Core compilation primitives: caches, contexts, diagnostics and rewriting."""
