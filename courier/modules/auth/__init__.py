"""
Auth Module - Black Box Interface

Purpose: Authenticate control surface callers
Interface: AuthModule.verify_api_key()
Hidden: Key parsing, comparison strategy

Can be replaced with any auth system without affecting other modules.
"""

from .auth import AuthModule

__all__ = ["AuthModule"]
