"""
HostPulse - Output Formatters

This package renders sweep results as text or JSON.
"""

from .json_formatter import JSONFormatter, DateTimeEncoder
from .text_reporter import ReportStyle, TextReporter

__all__ = [
    "JSONFormatter",
    "DateTimeEncoder",
    "ReportStyle",
    "TextReporter",
]
