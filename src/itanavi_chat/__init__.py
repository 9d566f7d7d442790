"""Terminal client for Itanavi group chats."""

__version__ = "0.1.0"
