"""Core Application Layer: Orchestrates use cases and application logic.

Contains the command handler used by the CLI and the host-side
invalidation registry.
"""
