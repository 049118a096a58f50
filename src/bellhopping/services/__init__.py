"""Service clients for the Sabre APIs."""

from .orchestrator import SearchOrchestrator, SearchOutcome
from .sabre_client import SabreClient, UpstreamRequestError

__all__ = [
    "SabreClient",
    "SearchOrchestrator",
    "SearchOutcome",
    "UpstreamRequestError",
]
