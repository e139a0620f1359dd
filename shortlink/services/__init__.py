"""
Services module for business logic separation.

This module contains service classes that encapsulate business logic,
keeping it separate from API endpoints and the record store.
"""

from shortlink.services.code_generator import CodeGenerator
from shortlink.services.url_service import URLRecordService

__all__ = ["CodeGenerator", "URLRecordService"]
