"""Infrastructure Layer: Contains concrete implementations and adapters.

Connects the cache to the outside world (file system, console, config
files) by implementing the interfaces defined in the domain layer.
"""
