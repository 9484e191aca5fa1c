"""
User Service — Application Package Initializer
===============================================

What: Marks the `user_service` directory as a Python package.
Who:  Used by uvicorn (`user_service.main:create_app`), pytest and the
      `user-service` console script.

Architecture Note:
    The service follows a layered layout:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │     UserService (Orchestration)     │  ← upload → publish, list
    ├──────────────┬──────────┬───────────┤
    │  UserStore   │  Blob    │  Queue    │  ← SQLAlchemy / Azure SDKs
    │  (SQL)       │ Uploader │ Publisher │
    └──────────────┴──────────┴───────────┘

    Every collaborator is constructed explicitly in the application factory
    and handed to UserService; nothing is reached through module globals.
"""

__version__ = "1.0.0"
