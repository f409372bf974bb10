"""Synthetic test images."""
