"""Binding Reconciler - keeps exactly one primary tenant_units row per tenant"""

import asyncio
import logging
from contextlib import asynccontextmanager
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from rent_backoffice.core.exceptions import (
    BindingConsistencyError, InvalidRentTermsError, NotFoundError,
)
from rent_backoffice.models.tenant import TenantUnit
from rent_backoffice.schemas.tenant import UNSET
from rent_backoffice.services.binding_store import BindingStore, lease_dates_valid

logger = logging.getLogger(__name__)

TERM_FIELDS = ("rent_amount", "rent_due_day", "lease_start", "lease_end")
RENT_FIELDS = ("rent_amount", "rent_due_day")


def _normalize_amount(value: Any) -> Any:
    if value is UNSET or value is None:
        return value
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise InvalidRentTermsError(f"rent_amount {value!r} is not a number")
    if not amount.is_finite() or amount < 0:
        raise InvalidRentTermsError(f"rent_amount must be >= 0, got {value}")
    return amount


def _normalize_due_day(value: Any) -> Any:
    if value is UNSET or value is None:
        return value
    if isinstance(value, bool) or not isinstance(value, int) or not 1 <= value <= 31:
        raise InvalidRentTermsError(f"rent_due_day must be an integer in [1, 31], got {value!r}")
    return value


def _terms_of(binding: Optional[TenantUnit]) -> Dict[str, Any]:
    if binding is None:
        return dict.fromkeys(TERM_FIELDS)
    return {name: getattr(binding, name) for name in TERM_FIELDS}


def _merge(base: Dict[str, Any], changes: Dict[str, Any]) -> Dict[str, Any]:
    """Omitted fields keep ``base``; None clears; anything else replaces."""
    return {name: base[name] if changes[name] is UNSET else changes[name] for name in TERM_FIELDS}


class BindingReconciler:
    """
    Single entry point for changing which unit a tenant is billed for.

    Mutations for one tenant are serialized with an in-process lock. Across
    processes the partial unique index on tenant_units rejects a second
    primary, and every mutation ends by re-reading the tenant's primaries.
    """

    def __init__(self):
        self._locks: Dict[UUID, asyncio.Lock] = {}
        self._users: Dict[UUID, int] = {}

    @asynccontextmanager
    async def _tenant_lock(self, tenant_id: UUID):
        """Hold the tenant's lock; it is dropped once no caller holds or awaits it."""
        lock = self._locks.setdefault(tenant_id, asyncio.Lock())
        self._users[tenant_id] = self._users.get(tenant_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[tenant_id] -= 1
            if not self._users[tenant_id]:
                del self._users[tenant_id]
                del self._locks[tenant_id]

    async def assign_primary_binding(
        self,
        db: AsyncSession,
        tenant_id: UUID,
        unit_id: UUID,
        rent_amount: Any = UNSET,
        rent_due_day: Any = UNSET,
        lease_start: Any = UNSET,
        lease_end: Any = UNSET,
    ) -> TenantUnit:
        """
        Make (tenant, unit) the tenant's primary binding.

        Each term argument is either UNSET (leave unchanged), None (clear it)
        or a value (set it). When the tenant moves to a new unit, omitted rent
        terms are carried over from the binding being demoted.

        Raises:
            InvalidRentTermsError: bad or missing rent terms
            NotFoundError: tenant or unit does not exist
            BindingConsistencyError: the tenant does not end up with exactly one primary
        """
        changes = {
            "rent_amount": _normalize_amount(rent_amount),
            "rent_due_day": _normalize_due_day(rent_due_day),
            "lease_start": lease_start,
            "lease_end": lease_end,
        }

        async with self._tenant_lock(tenant_id):
            if await BindingStore.get_tenant(db, tenant_id) is None:
                raise NotFoundError("Tenant", tenant_id)
            if await BindingStore.get_unit(db, unit_id) is None:
                raise NotFoundError("Unit", unit_id)

            primaries = await BindingStore.list_primary_bindings(db, tenant_id)
            if len(primaries) > 1:
                raise BindingConsistencyError(
                    tenant_id, len(primaries), "repair the primary binding before reassigning"
                )
            current = primaries[0] if primaries else None
            bindings = await BindingStore.list_bindings(db, tenant_id)
            existing = next((b for b in bindings if b.unit_id == unit_id), None)

            if not bindings and any(changes[name] in (UNSET, None) for name in RENT_FIELDS):
                raise InvalidRentTermsError(
                    "rent_amount and rent_due_day are required for a tenant's first binding"
                )

            if existing is not None and existing.is_primary:
                merged = _merge(_terms_of(existing), changes)
                self._check_lease(merged)
                await self._update_in_place(db, existing, merged)
            else:
                base = _terms_of(existing)
                if current is not None:
                    for name in RENT_FIELDS:
                        if getattr(current, name) is not None:
                            base[name] = getattr(current, name)
                merged = _merge(base, changes)
                self._check_lease(merged)
                await self._move_primary(db, tenant_id, unit_id, existing, current, merged)

            return await self._verify(db, tenant_id, unit_id)

    async def repair_primary_binding(
        self,
        db: AsyncSession,
        tenant_id: UUID,
        unit_id: UUID,
    ) -> TenantUnit:
        """Demote every primary except (tenant, unit) and make that one primary."""
        async with self._tenant_lock(tenant_id):
            keep = await BindingStore.find_binding(db, tenant_id, unit_id)
            if keep is None:
                raise NotFoundError("Binding", f"{tenant_id}/{unit_id}")
            keep_id = keep.id
            keep_primary = keep.is_primary

            primaries = await BindingStore.list_primary_bindings(db, tenant_id)
            stale = [p.id for p in primaries if p.id != keep_id]
            for binding_id in stale:
                await BindingStore.set_primary_flag(db, binding_id, False)
            if not keep_primary:
                await BindingStore.set_primary_flag(db, keep_id, True)

            logger.warning(
                "Repaired primary binding",
                extra={
                    "tenant_id": str(tenant_id),
                    "unit_id": str(unit_id),
                    "demoted": [str(b) for b in stale],
                },
            )
            return await self._verify(db, tenant_id, unit_id)

    @staticmethod
    def _check_lease(terms: Dict[str, Any]) -> None:
        if not lease_dates_valid(terms["lease_start"], terms["lease_end"]):
            raise InvalidRentTermsError("lease_end must not precede lease_start")

    @staticmethod
    async def _update_in_place(db: AsyncSession, binding: TenantUnit, terms: Dict[str, Any]) -> None:
        for name, value in terms.items():
            setattr(binding, name, value)
        try:
            await BindingStore.upsert_binding(db, binding)
        except IntegrityError as e:
            await db.rollback()
            raise InvalidRentTermsError(f"Rejected rent terms: {e.orig}") from e

    async def _move_primary(
        self,
        db: AsyncSession,
        tenant_id: UUID,
        unit_id: UUID,
        existing: Optional[TenantUnit],
        current: Optional[TenantUnit],
        terms: Dict[str, Any],
    ) -> None:
        demoted_id = current.id if current is not None else None
        if demoted_id is not None:
            await BindingStore.set_primary_flag(db, demoted_id, False)
            logger.info(
                "Demoted primary binding",
                extra={"tenant_id": str(tenant_id), "binding_id": str(demoted_id)},
            )

        target = existing if existing is not None else TenantUnit(tenant_id=tenant_id, unit_id=unit_id)
        for name, value in terms.items():
            setattr(target, name, value)
        target.is_primary = True

        try:
            await BindingStore.upsert_binding(db, target)
        except IntegrityError as e:
            await db.rollback()
            await self._restore_primary(db, tenant_id, demoted_id)
            primaries = await BindingStore.list_primary_bindings(db, tenant_id)
            raise BindingConsistencyError(
                tenant_id, len(primaries), f"could not promote unit {unit_id}: {e.orig}"
            ) from e
        except Exception:
            await db.rollback()
            await self._restore_primary(db, tenant_id, demoted_id)
            raise

    @staticmethod
    async def _restore_primary(db: AsyncSession, tenant_id: UUID, binding_id: Optional[UUID]) -> None:
        if binding_id is None:
            return
        try:
            await BindingStore.set_primary_flag(db, binding_id, True)
        except SQLAlchemyError:
            await db.rollback()
            logger.exception(
                "Could not restore demoted binding",
                extra={"tenant_id": str(tenant_id), "binding_id": str(binding_id)},
            )

    @staticmethod
    async def _verify(db: AsyncSession, tenant_id: UUID, unit_id: UUID) -> TenantUnit:
        primaries = await BindingStore.list_primary_bindings(db, tenant_id)
        if len(primaries) != 1:
            logger.error(
                "Primary binding check failed",
                extra={"tenant_id": str(tenant_id), "primary_count": len(primaries)},
            )
            raise BindingConsistencyError(tenant_id, len(primaries))
        if primaries[0].unit_id != unit_id:
            raise BindingConsistencyError(
                tenant_id, 1, f"primary is unit {primaries[0].unit_id}, expected {unit_id}"
            )
        return primaries[0]


binding_reconciler = BindingReconciler()
