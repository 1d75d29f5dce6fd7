"""Backends that turn a GeneratedOutput into text."""

from .rust_source import render_diagnostics, render_output

__all__ = ["render_diagnostics", "render_output"]
