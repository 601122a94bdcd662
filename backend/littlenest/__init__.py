"""
LittleNest Backend: Application Package
=========================================

What:  REST backend for a parenting platform: baby-name lookup, search and
       recommendations, plus parenting blog posts with featured images.

Architecture:
    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns, response envelope
    ├─────────────────────────────────────┤
    │         Services (Business Logic)   │  ← derivation, scoring, queries
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘

    The name derivation pipeline and popularity scoring are pure functions
    (services/derivation.py, services/popularity.py) with no database or
    HTTP dependency.
"""

__version__ = "1.0.0"
