"""
Infrastructure layer - database, cache, auth, logging, settings.

This layer contains the technical collaborators that surround the
synchronization core: the metadata store, the cache/session backend and
configuration.
"""
