"""Stage Studio: export pipeline for MUGEN / IKEMEN GO stages."""

__version__ = "0.1.0"
