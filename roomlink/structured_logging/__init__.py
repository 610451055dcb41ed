"""
Structured logging package for roomlink.

All imports should use explicit paths like
'from roomlink.structured_logging.enhanced_logging_config import get_logger'.

The directory is named 'structured_logging' rather than 'logging' so that it never
shadows the standard library module.
"""

__all__: list[str] = []
