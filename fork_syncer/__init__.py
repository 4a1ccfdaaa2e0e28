"""
Fork Syncer - Mirror repositories between a private and a public fork.

This package copies the tree of a source git repository into a destination
repository, rewrites references to the source repos (module paths, repo
paths, tree references) so the copy works in its new home, then commits and
pushes. Pairs can depend on other pairs, which are synced first.
"""

__version__ = "1.0.0"
