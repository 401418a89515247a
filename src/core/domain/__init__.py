"""Domain models and static tables.

Why:
- Pure, strict data structures (Pydantic v2) and the load-bearing constants.
- The domain knows nothing about HTTP, the CLI or the event loop.
"""
