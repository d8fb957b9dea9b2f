"""Infrastructure layer - filesystem, on-disk index, storage, watcher.

This layer depends on stdlib, third-party libs (watchdog) and the domain
layer.  It must never import from services, commands, or output.
"""
