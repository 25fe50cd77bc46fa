"""Offline-first document sync engine for Dropbox-backed drafts."""

__version__ = "0.3.0"
