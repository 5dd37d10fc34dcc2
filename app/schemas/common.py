"""
Common Schemas
"""

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    message: str = Field(..., description="Error message")
    status: int = Field(..., description="HTTP status code")


_ERROR_DESCRIPTIONS = {
    400: "Malformed or missing input",
    401: "Missing or invalid credentials",
    403: "Authenticated caller does not own the resource",
    404: "Resource not found",
    409: "Resource already exists",
    500: "Downstream or unexpected failure",
}


def error_responses(*codes: int) -> dict[int | str, dict]:
    """OpenAPI `responses` entry for the error codes a route can return"""
    return {
        code: {"model": ErrorResponse, "description": _ERROR_DESCRIPTIONS[code]}
        for code in codes
    }
