"""
DOCX to PDF Conversion Service package.

This module provides a FastAPI application that accepts DOCX uploads over
HTTP or a WebSocket and returns the PDF produced by an external conversion
backend (Word automation or unoconv).
"""

__all__ = ["__version__"]

__version__ = "1.0.0"
