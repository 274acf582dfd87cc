"""Caching Service Implementation.

Provides the concrete ObjectCache: an in-memory front cache over a
file-backed entry store, with exclusion policy and flush maintenance.
Bounded Context: Cache Management
"""
