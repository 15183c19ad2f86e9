"""Codescape: turn a source tree into a navigable 3D semantic model."""

__version__ = "0.3.0"
