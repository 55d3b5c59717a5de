"""User-visible toast notifications."""
