"""Domain errors raised by the monthly report services.

Routers never catch these; `core.errors` maps each one to an HTTP response.
"""
from decimal import Decimal


class ReportError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"detail": self.message}


class ReportValidationError(ReportError):
    """Missing or malformed input (property, month, year, amounts)."""
    status_code = 400


class Unauthorized(ReportError):
    """Acting user does not manage the property. Message never hints at existence."""
    status_code = 403

    def __init__(self, message: str = "Not authorized for this property"):
        super().__init__(message)


class ReportNotFound(ReportError):
    """Unknown report id, or one the acting user does not manage."""
    status_code = 404

    def __init__(self, message: str = "Report not found or unauthorized"):
        super().__init__(message)


class AllocationMismatch(ReportError):
    """Allocated total differs from the collected budget beyond tolerance."""
    status_code = 400

    def __init__(self, expected: Decimal, actual: Decimal):
        super().__init__("Total allocated amount must equal the total budget")
        self.expected = expected
        self.actual = actual

    def to_dict(self) -> dict:
        return {
            "detail": self.message,
            "total_budget": f"{self.expected:.2f}",
            "total_allocated": f"{self.actual:.2f}",
        }


class UpstreamDataError(ReportError):
    """Payment or spending-category lookup failed."""
    status_code = 502

    def __init__(self, message: str = "Report data source unavailable"):
        super().__init__(message)


class AllocationRejected(ReportValidationError):
    """An allocation edit would push the percentage total past 100%."""

    def __init__(self, message: str, total_percentage: Decimal):
        super().__init__(message)
        self.total_percentage = total_percentage

    def to_dict(self) -> dict:
        return {"detail": self.message, "total_percentage": f"{self.total_percentage:.2f}"}


class CategoryNotInBreakdown(ReportError):
    status_code = 404

    def __init__(self, config_id):
        super().__init__(f"Spending category {config_id} is not part of this breakdown")
        self.config_id = config_id
