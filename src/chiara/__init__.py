"""chiara: Podio data access with lazily paginated item collections."""

__version__ = "0.1.0"
