"""
PIEM Backend — Application Package Initializer
===============================================

What:  Personal Inventory & Expenses Manager REST API.
Who:   Imported by uvicorn (`piem.main:app`), pytest, and `python -m piem`.

Architecture Note:
    ┌─────────────────────────────────────┐
    │      Routes (API Layer)             │  ← HTTP wiring, auth dependencies
    ├─────────────────────────────────────┤
    │      Services (Resource Logic)      │  ← generic CRUD + per-resource hooks
    ├─────────────────────────────────────┤
    │      Schemas (Validation)           │  ← Pydantic create/update/out models
    ├─────────────────────────────────────┤
    │      Database (Document Store)      │  ← Motor client held for process lifetime
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
