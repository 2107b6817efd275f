"""
Command-line interface for Inbox Unsubscriber.
"""

from .main import cli

__all__ = ['cli']
