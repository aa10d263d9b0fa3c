from .files import BACKUP_FILES, write_backups
from .state import ExistingData, load_existing_data

__all__ = ["BACKUP_FILES", "write_backups", "ExistingData", "load_existing_data"]
