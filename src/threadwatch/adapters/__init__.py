"""Adapters implementing core ports and file handling."""
