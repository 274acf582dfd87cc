"""Domain Events: host lifecycle events that trigger targeted invalidation."""
