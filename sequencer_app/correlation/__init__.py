"""Correlation of device commands with their acknowledgments."""
