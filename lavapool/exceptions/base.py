from __future__ import annotations


class LavaPoolException(Exception):
    """Base exception for errors in the library"""
