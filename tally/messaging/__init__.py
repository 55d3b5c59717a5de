"""Contact formatting, message templates and the school settings read."""
