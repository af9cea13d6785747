"""Shared helpers: calendar-day arithmetic and phase invariants."""
