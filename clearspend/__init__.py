"""
ClearSpend Assistant - Source Package

The query resolver behind the receipt chat assistant. It turns a
free-text question about stored receipts into a filter, searches the
record store and answers with a deterministic summary.

DESIGN PRINCIPLES:
1. Answers come only from stored receipts
2. Collaborator failures degrade, they never crash a conversation
3. Every request is independent (no server-side session state)
4. Every step is auditable
5. The record store is swappable
"""

__version__ = "1.0.0"
__author__ = "ClearSpend Team"
