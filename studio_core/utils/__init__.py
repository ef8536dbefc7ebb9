"""Utility modules shared across studio_core."""

from .data_urls import decode_data_url

__all__ = [
    "decode_data_url",
]
