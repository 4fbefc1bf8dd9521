"""
Feature modules live under this package.

Each module owns its routes/models/record model, while reusing the shared
primitives (forms, validation, CRUD view, RBAC, audit, DB session).
"""
