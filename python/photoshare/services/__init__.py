"""Service layer.

Services hold the domain rules. They receive every collaborator (metadata
store, storage backend, notifier, viewer) as an argument and never reach
for module-level state.
"""
