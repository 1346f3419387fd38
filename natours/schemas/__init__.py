"""
Response schemas for the Natours API.

Limitations:
- Envelope structure is fixed; customization requires subclassing or code changes
"""

from natours.schemas.response import ErrorInfo, ErrorResponse, ResourceResponse

__all__ = ["ResourceResponse", "ErrorResponse", "ErrorInfo"]
