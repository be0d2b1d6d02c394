"""Exception classes for harvest-kimai-sync."""


class HarvestKimaiSyncError(Exception):
    """Base exception for all harvest-kimai-sync errors."""
    pass


class ConfigurationError(HarvestKimaiSyncError):
    """Raised when required credentials or settings are missing."""
    pass


class ValidationError(HarvestKimaiSyncError):
    """Raised when a command-line argument is malformed."""
    pass


class NetworkError(HarvestKimaiSyncError):
    """Raised when a request to Harvest or Kimai fails."""
    pass


class StorageError(HarvestKimaiSyncError):
    """Raised when the local database rejects an operation."""
    pass
