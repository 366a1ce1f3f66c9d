"""Glimpse command-line interface."""
