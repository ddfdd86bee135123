"""Vibranium: a Slack assistant with vector-indexed conversational memory."""
