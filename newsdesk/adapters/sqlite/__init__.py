from newsdesk.adapters.sqlite.migrator import SQLiteMigrator

__all__ = ["SQLiteMigrator"]
