"""Domain Models: value objects shared across layers."""
