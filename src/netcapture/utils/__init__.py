"""Utility modules for netcapture."""

from netcapture.utils.logging import SensitiveDataMaskingFilter, setup_logging

__all__ = ["SensitiveDataMaskingFilter", "setup_logging"]
