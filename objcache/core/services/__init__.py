"""Application services built on top of the object cache."""
