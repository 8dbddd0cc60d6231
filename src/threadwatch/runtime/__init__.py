"""Monitoring pipeline, dump coordination and session lifecycle."""
