"""Core interfaces/abstractions.

Why:
- Defines contracts (Protocol) implemented by concrete adapters.
- Inverts dependencies: the core depends on abstractions, never on httpx or
  the operating system directly.
"""
