"""
Migration module
Edge-to-edge service migration sessions
"""
from .migration_manager import (
    ServiceMigrationManager, MigrationSession, MigrationPolicy, MigrationState
)

__all__ = ['ServiceMigrationManager', 'MigrationSession', 'MigrationPolicy', 'MigrationState']
