"""
VibeCraft - content-aware photo enhancement

Analyzes photos with a vision model, picks an aesthetic and an editing
configuration for the content, and applies them as composed color
matrices, tracking each upload through a persisted processing pipeline.
"""

__version__ = "0.1.0"
