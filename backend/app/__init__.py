"""
LensCritique Backend: Application Package
==========================================

What: Peer photo-critique service. Users publish photos, other users rate
      and comment on them, and reviewing others unlocks live posting.
How:  A thin application layer over a managed backend. Identity and object
      storage are reached over the backend's REST API, relational records
      and the atomic counter procedures over its Postgres connection.

Architecture Note:
    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← one module per client screen
    ├─────────────────────────────────────┤
    │   Session context / route guard     │  ← auth → profile → guard
    ├─────────────────────────────────────┤
    │         Services (Business Logic)   │  ← posts, reviews, profiles, admin
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │  Backend collaborators              │  ← Postgres, auth REST, storage REST
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
