"""Core domain package for the Itanavi group chat client.

Core holds message reconciliation, read tracking and polling logic without
any HTTP, WebSocket or UI specific code, keeping the behaviour testable.
"""
