"""
RepackHub — record-management data-access core for a TCG community app.

Players, cards, promos and repacks are kept in identity-scoped, locally
cached collections that mirror a remote relational store.
"""

__version__ = "0.1.0"
