"""
Storage Package.

Persistence for imported trades.

Modules:
- database: Engine and session management
- models/: ORM models
- repositories/: Data access layer
"""
