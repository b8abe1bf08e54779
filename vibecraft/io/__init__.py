"""
Image encoding and decoding.
"""

from .codec import BitmapCodec, PillowCodec, as_rgba

__all__ = ['BitmapCodec', 'PillowCodec', 'as_rgba']
