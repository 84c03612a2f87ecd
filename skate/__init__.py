"""
SKATE — Turn-Based Trick Challenges
=====================================
Two skaters take turns attempting the same trick.  Miss it and you earn
the next letter of S-K-A-T-E; spell the whole word and you lose.

Package layout::

    skate/
    ├── config.py          # YAML → typed Python config
    ├── constants.py       # The word, input limits, turn window
    ├── client.py          # httpx API client with a session-scoped cache
    ├── database/
    │   ├── engine.py      # SQLAlchemy engine + async helper
    │   └── models.py      # ORM tables for the SQL store
    ├── engine/
    │   ├── records.py     # User / Challenge / TrickAttempt records
    │   ├── errors.py      # Typed rule and lookup errors
    │   └── rules.py       # Pure challenge state machine
    ├── services/
    │   ├── store.py              # Store interface + in-memory store
    │   ├── sql_store.py          # SQLAlchemy-backed store
    │   ├── challenge_service.py  # Rules → store, compare-and-swap
    │   ├── admin_service.py      # Audited letter override
    │   ├── expiry_service.py     # Turn deadline sweep
    │   └── seed.py               # Demo data
    └── api/
        ├── main.py        # FastAPI app
        ├── auth.py        # Admin JWT helpers
        └── routes/        # Challenge, user and admin endpoints
"""

__version__ = "0.1.0"
