"""Offline support: the retry queue and the connectivity monitor."""
