"""Glimpse request handlers and HTTP app."""
