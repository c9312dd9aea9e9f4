"""Push notification enrichment with alert details from the backend."""

__version__ = "0.1.0"
