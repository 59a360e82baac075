"""
Base schemas and response utilities.
"""

from typing import Any, Dict


class BaseResponse:
    """Base response format for consistent API responses."""

    @staticmethod
    def success(data: Any = None, message: str = "Success") -> Dict[str, Any]:
        """Create a success response."""
        return {
            "success": True,
            "message": message,
            "data": data
        }

    @staticmethod
    def error(error: str, details: Any = None) -> Dict[str, Any]:
        """Create an error response."""
        response = {
            "success": False,
            "error": error,
        }
        if details is not None:
            response["details"] = details
        return response
