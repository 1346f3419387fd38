"""
Response envelopes for resource endpoints.

Success bodies follow the shape ``{"status", "results"?, "message"?, "data"}``
where ``data`` is keyed by the lowercased model name. Error bodies are
produced only by the centralized exception handlers.

Limitations:
- Envelope structure is fixed; customization requires subclassing or code changes
- Documents inside ``data`` are passed through untyped
"""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field


class ResourceResponse(BaseModel):
    """
    Schema for successful resource responses.

    Attributes:
        status: Always "success"
        results: Number of documents for list responses
        message: Optional message providing additional context
        data: Payload keyed by model name, or None for deletions
    """

    status: Literal["success"] = Field(
        default="success", description="Indicates the request succeeded"
    )
    results: Optional[int] = Field(
        default=None, description="Number of documents in a list response"
    )
    message: Optional[str] = Field(
        default=None, description="Additional context about the response"
    )
    data: Optional[Dict[str, Any]] = Field(
        default=None, description="Response payload keyed by model name"
    )

    def to_content(self) -> Dict[str, Any]:
        """
        Render the envelope as JSON-ready content.

        ``results`` and ``message`` are dropped when unset; ``data`` is always
        present, even when it is null.
        """
        exclude = {name for name in ("results", "message") if getattr(self, name) is None}
        return self.model_dump(mode="json", exclude=exclude)


class ErrorInfo(BaseModel):
    """
    Detailed error information.

    Attributes:
        code: Error code identifier
        message: Human-readable error message
        field: Optional field name that caused the error
    """

    code: str = Field(..., description="Error code identifier")
    message: str = Field(..., description="Human-readable error message")
    field: Optional[str] = Field(
        default=None, description="Field that caused the error"
    )


class ErrorResponse(BaseModel):
    """
    Schema for error responses.

    Attributes:
        status: "fail" for client errors, "error" for server errors
        message: Error message
        errors: List of error details
        details: Extra error details (debug mode only)
        stack: Formatted traceback (debug mode only)
    """

    status: Literal["fail", "error"] = Field(
        default="error", description="fail for 4xx responses, error for 5xx"
    )
    message: str = Field(..., description="Human-readable error message")
    errors: List[ErrorInfo] = Field(
        default_factory=list, description="List of error details"
    )
    details: Optional[Dict[str, Any]] = Field(
        default=None, description="Additional error details"
    )
    stack: Optional[str] = Field(default=None, description="Traceback in debug mode")
