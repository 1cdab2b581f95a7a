"""Duplicate movie finder and watch-history reconciler for Jellyfin."""

__version__ = "0.1.0"
