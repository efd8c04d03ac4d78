from .client import FailureReason, FieldPresence, NavigationOutcome, NavigationState, PortalCredentials, PortalNavigator
from .session import open_session

__all__ = [
    "PortalNavigator",
    "PortalCredentials",
    "NavigationOutcome",
    "NavigationState",
    "FailureReason",
    "FieldPresence",
    "open_session",
]
