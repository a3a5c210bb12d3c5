"""Dicy: dice territory conquest engine with sandboxed bot agents."""

__version__ = "0.1.0"
