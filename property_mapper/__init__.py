"""County property-record mappers: field extractors plus a schema validator."""

__version__ = "0.1.0"
