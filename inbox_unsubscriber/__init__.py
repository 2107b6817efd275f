"""
Inbox Unsubscriber - classify junk mail, expand junk senders, and unsubscribe.
"""

__version__ = '1.0.0'
