"""Domain models, ports and pure helpers."""
