"""Project plan backend: phase records, timeline layout and plan services."""
