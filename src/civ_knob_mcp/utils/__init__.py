"""Shared helpers: BCD codec and frequency string handling."""
