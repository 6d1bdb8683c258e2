"""Domain layer (pure logic).

- Keep account rules, record shapes and result types here.
- Avoid I/O: no store calls, no HTTP/FastAPI, no SQLAlchemy sessions.
- Prefer deterministic functions (ids and time are passed in as arguments if needed).
"""
