"""Scanners, expression and target parsers, and syntax-tree types for Jinja-like templates."""

__version__ = "0.1.0"
__all__ = ["scanner", "expr", "targets", "nodes"]