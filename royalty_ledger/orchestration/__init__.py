"""Orchestration: connection lifecycle, wallet session and the LedgerClient facade.

Collaborators are injected; nothing here reads host globals directly.
"""
