"""
Error types for the organizer credential tool.
"""


class OrganizerError(Exception):
    """Base exception for credential issuance."""
    pass


class ConfigurationError(OrganizerError):
    """Raised when DATABASE_URL or another setting is missing or invalid."""
    pass


class PersistenceError(OrganizerError):
    """Raised when the database cannot be reached or a query fails."""
    pass


class NoSaltConfiguredError(OrganizerError):
    """Raised when no salt component has been stored yet."""
    pass


class SaltAlreadyConfiguredError(OrganizerError):
    """Raised when a salt component already exists and a second one would be stored."""
    pass


class RandomSourceError(OrganizerError):
    """Raised when the OS secure random source cannot supply entropy."""
    pass
