"""Vector-indexed conversational memory."""
