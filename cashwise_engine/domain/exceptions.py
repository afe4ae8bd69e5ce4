"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class DataSourceError(DomainException):
    """Finance API returned an error or is unavailable"""

    pass


class CurrencyConversionError(DomainException):
    """Exchange rate could not be fetched or applied"""

    pass


class NotifierError(DomainException):
    """Notification scheduler rejected or failed a request"""

    pass


class CollaboratorTimeoutError(DomainException):
    """An external call did not complete within its time budget"""

    def __init__(self, step: str, timeout: float):
        super().__init__(f"{step} timed out after {timeout}s")
        self.step = step
        self.timeout = timeout
