"""File-backed storage: key resolution, record encoding and the entry store."""
