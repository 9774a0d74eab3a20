"""Card feedback service: authenticated refresh-card callback endpoint."""

__version__ = "0.1.0"
