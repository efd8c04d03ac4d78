from __future__ import annotations


class ConfigurationError(ValueError):
    """
    Missing or invalid configuration (credentials, account, date flags).

    Always raised before any browser resource is acquired.
    """


class FormatError(ValueError):
    """
    A date or amount string does not have the expected portal shape.
    """


class NavigationError(RuntimeError):
    pass


class LoginFieldsNotFoundError(NavigationError):
    """
    Raised when the mandatory password field never becomes visible after the document number step.
    """


class AccountNotFoundError(NavigationError):
    def __init__(self, message: str, *, snippet: str = "") -> None:
        super().__init__(message)
        self.snippet = snippet


class UnexpectedNavigationError(NavigationError):
    pass
