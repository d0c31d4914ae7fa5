"""Store named environments and their key/value settings in SQLite behind a JSON WSGI API."""

__version__ = "0.1.0"