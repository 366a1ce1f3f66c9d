"""Glimpse — dual-mode (keyword + semantic) image search over uploaded images."""
