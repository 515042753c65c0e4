"""Domain errors raised by the billing services.

The API layer maps each class to an HTTP status in ``rent_backoffice.main``.
Sweeps catch ``IncompleteBindingError``, database errors and any failure of
the link provider or dispatcher per item and keep going. Everything else
propagates to the caller.
"""

from datetime import date
from typing import Optional
from uuid import UUID


class RentBackOfficeError(Exception):
    """Base class for all domain errors"""

    code = "RENT_BACKOFFICE_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidRentTermsError(RentBackOfficeError, ValueError):
    """Rent amount or due day missing or out of range"""

    code = "INVALID_RENT_TERMS"


class NotFoundError(RentBackOfficeError, LookupError):
    """Tenant, unit, binding or obligation does not exist"""

    code = "RESOURCE_NOT_FOUND"

    def __init__(self, resource: str, resource_id: object):
        super().__init__(f"{resource} {resource_id} not found")
        self.resource = resource
        self.resource_id = resource_id


class CollaboratorError(RentBackOfficeError):
    """Payment-link generation or notification delivery failed"""

    code = "COLLABORATOR_FAILED"


class BindingConsistencyError(RentBackOfficeError):
    """A tenant does not have exactly one primary binding after a mutation."""

    code = "BINDING_CONSISTENCY"

    def __init__(self, tenant_id: UUID, primary_count: int, detail: Optional[str] = None):
        message = f"Tenant {tenant_id} has {primary_count} primary bindings"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
        self.tenant_id = tenant_id
        self.primary_count = primary_count


class IncompleteBindingError(RentBackOfficeError):
    """Primary binding lacks rent_amount or rent_due_day"""

    code = "INCOMPLETE_BINDING"

    def __init__(
        self,
        binding_id: UUID,
        missing: list[str],
        tenant_id: Optional[UUID] = None,
        unit_id: Optional[UUID] = None,
    ):
        super().__init__(f"Binding {binding_id} is missing {', '.join(missing)}")
        self.binding_id = binding_id
        self.missing = missing
        self.tenant_id = tenant_id
        self.unit_id = unit_id


class DuplicateObligationError(RentBackOfficeError):
    """An obligation already exists for the tenant/unit in that month"""

    code = "DUPLICATE_OBLIGATION"

    def __init__(self, tenant_id: UUID, unit_id: UUID, period_start: date):
        super().__init__(
            f"Tenant {tenant_id} already has an obligation for unit {unit_id} "
            f"in {period_start:%B %Y}"
        )
        self.tenant_id = tenant_id
        self.unit_id = unit_id
        self.period_start = period_start
