class InsightsException(Exception):
    """Base exception for all insights-related errors."""
    pass

class ConfigError(InsightsException):
    """Raised when a mandatory setting is missing or malformed."""
    pass

class DatabaseConnectionError(InsightsException):
    """Raised when the database cannot be reached."""
    pass

class ClientInitError(InsightsException):
    """Raised when the GitHub client cannot load its TLS trust material."""
    pass

class ValidationError(InsightsException):
    """Raised when an inbound payload is malformed."""
    pass

class PersistenceError(InsightsException):
    """Raised when a database operation fails."""
    pass

class NotFoundError(PersistenceError):
    """Raised when an entity is absent or soft-deleted."""
    def __init__(self, table: str, entity_id: str):
        self.table = table
        self.entity_id = entity_id
        super().__init__(f"{table} entry {entity_id} not found.")

class RemoteAPIError(InsightsException):
    """Raised when a call to the GitHub REST API fails."""
    def __init__(self, url: str, reason: str, status: int = None):
        self.url = url
        self.status = status
        super().__init__(f"GET {url} failed: {reason}")

class ParseError(InsightsException):
    """Raised when a GitHub response body cannot be parsed."""
    pass
