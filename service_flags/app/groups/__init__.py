"""
Group registry package.

Groups are named predicates ``(actor, values) -> bool``. They are process
configuration, registered once at startup, and never persisted: storage
backends only hold group names.
"""
