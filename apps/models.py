"""
Model registration for migrations: import all models that should be migrated by Alembic here.
When adding/removing apps, add/remove the corresponding imports here; no need to change alembic/env.py.
"""
from apps.banking.models import UserToken

__all__ = ["UserToken"]
