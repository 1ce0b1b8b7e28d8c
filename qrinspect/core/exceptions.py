# qrinspect/core/exceptions.py
"""
Domain exceptions raised by the service layer.

Services never import FastAPI; each exception carries an HTTP status hint and
the global handlers in ``qrinspect.core.errors`` turn it into the standard
JSON error envelope.
"""
from __future__ import annotations

from typing import Any, Optional


class InspectionError(Exception):
    status_code = 400
    error_type = "inspection_error"

    def __init__(self, message: str, *, details: Optional[Any] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class NotFoundError(InspectionError):
    status_code = 404
    error_type = "not_found"


class TemplateNotFound(NotFoundError):
    def __init__(self, template_id: int) -> None:
        super().__init__("Template not found", details={"template_id": template_id})
        self.template_id = template_id


class InspectionNotFound(NotFoundError):
    def __init__(self, inspection_id: int) -> None:
        super().__init__("Inspection not found", details={"inspection_id": inspection_id})
        self.inspection_id = inspection_id


class ChecklistItemNotFound(NotFoundError):
    def __init__(self, item_id: int) -> None:
        super().__init__("Checklist item not found", details={"item_id": item_id})


class QrCodeNotFound(NotFoundError):
    def __init__(self, qr_code_id: str) -> None:
        super().__init__("QR code not found", details={"qr_code_id": qr_code_id})


class NoActiveInspection(NotFoundError):
    def __init__(self, template_id: int) -> None:
        super().__init__(
            "No active inspection found for this QR code",
            details={"template_id": template_id},
        )


class InvalidInspector(InspectionError):
    """Unknown user, or a user whose role is not INSPECTOR."""

    status_code = 422
    error_type = "invalid_inspector"

    def __init__(self, inspector_id: int) -> None:
        super().__init__("Invalid inspector", details={"inspector_id": inspector_id})
        self.inspector_id = inspector_id


class OpenInspectionExists(InspectionError):
    status_code = 409
    error_type = "open_inspection_exists"

    def __init__(self, template_id: int, inspection_id: int) -> None:
        super().__init__(
            "Template already has an open inspection",
            details={"template_id": template_id, "inspection_id": inspection_id},
        )
        self.template_id = template_id
        self.inspection_id = inspection_id


class InspectionLocked(InspectionError):
    error_type = "inspection_locked"


class IncompleteInspection(InspectionError):
    error_type = "incomplete_inspection"


class AccessDenied(InspectionError):
    status_code = 403
    error_type = "forbidden"

    def __init__(self, message: str = "Forbidden") -> None:
        super().__init__(message)
