"""Moderation web API."""
