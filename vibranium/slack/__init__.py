"""Slack transport: Web API access, event parsing and the Bolt app."""
