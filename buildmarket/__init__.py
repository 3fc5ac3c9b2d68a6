"""
BuildMarket Backend: Application Package
=========================================

What: Marketplace API where sellers list player build templates for sports
      video games and buyers discover, score, and purchase them.
Who:  Imported by uvicorn (buildmarket.main:app), Alembic, and pytest.

Architecture Note:
    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns, error mapping
    ├─────────────────────────────────────┤
    │   Services (Business Logic)         │  ← return ServiceResult values
    │   Compatibility scorer (pure)       │  ← no I/O, no state
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← owned by the app factory
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
