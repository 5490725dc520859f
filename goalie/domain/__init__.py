"""Domain layer (pure logic).

- Keep grid and settlement rules here.
- Avoid I/O: no DB sessions, no HTTP/FastAPI, no payouts.
- Prefer deterministic functions (time is passed in as an argument if needed).
"""
