"""Contract lifecycle: creation, signing, approval, activation, deletion."""

import calendar
import logging
from datetime import date, datetime, timezone
from decimal import Decimal
from zoneinfo import ZoneInfo

from sqlalchemy import func, or_, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from polarad_admin.core.exceptions import InvalidStateError, NotFoundError
from polarad_admin.core.security import AdminSession
from polarad_admin.models.contract import Contract, ContractSequence
from polarad_admin.models.package import Package
from polarad_admin.models.user import User
from polarad_admin.services.audit import log_audit
from polarad_admin.services.state_machines import ContractStatus, EntityType
from polarad_admin.services.stats import invalidate_status_counts, status_counts
from polarad_admin.services.transitions import append_log, apply_transition, atomic

logger = logging.getLogger(__name__)

_KST = ZoneInfo("Asia/Seoul")

DEFAULT_CONTRACT_PERIOD = 12
DEFAULT_REJECT_REASON = "No reason given"

# Customer-entered fields accepted when the contract is signed
SIGNATURE_FIELDS = (
    "company_name",
    "ceo_name",
    "business_number",
    "address",
    "contact_name",
    "contact_phone",
    "contact_email",
    "client_signature",
)


MAX_DAILY_SEQUENCE = 9999


def today_kst() -> date:
    return datetime.now(_KST).date()


def format_contract_number(day: date, sequence: int) -> str:
    """``YYYYMMDD-XXXX`` with a zero-padded per-day sequence."""
    return f"{day:%Y%m%d}-{sequence:04d}"


def next_sequence_statement(day_key: str):
    """Atomically bump (or start) the day's counter and return the new value."""
    stmt = pg_insert(ContractSequence).values(day=day_key, last_value=1)
    stmt = stmt.on_conflict_do_update(
        index_elements=[ContractSequence.day],
        set_={
            "last_value": ContractSequence.last_value + 1,
            "updated_at": func.now(),
        },
    )
    return stmt.returning(ContractSequence.last_value)


async def allocate_contract_number(db: AsyncSession, day: date | None = None) -> str:
    day = day or today_kst()
    result = await db.execute(next_sequence_statement(f"{day:%Y%m%d}"))
    sequence = result.scalar_one()
    if sequence > MAX_DAILY_SEQUENCE:
        raise InvalidStateError(
            f"Daily contract limit of {MAX_DAILY_SEQUENCE} reached for {day:%Y-%m-%d}"
        )
    return format_contract_number(day, sequence)


def compute_total_amount(monthly_fee: Decimal, period: int, setup_fee: Decimal) -> Decimal:
    return Decimal(monthly_fee) * period + Decimal(setup_fee or 0)


def add_months(start: date, months: int) -> date:
    """Same day ``months`` later, clamped to the end of shorter months."""
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


async def get_contract(db: AsyncSession, contract_id: int, with_logs: bool = False) -> Contract:
    stmt = select(Contract).where(Contract.id == contract_id)
    if with_logs:
        stmt = stmt.options(selectinload(Contract.logs))
    result = await db.execute(stmt)
    contract = result.scalar_one_or_none()
    if not contract:
        raise NotFoundError("Contract", contract_id)
    return contract


async def list_contracts(
    db: AsyncSession,
    *,
    status: str | None = None,
    search: str | None = None,
    offset: int = 0,
    limit: int = 20,
) -> tuple[list[Contract], int]:
    conditions = []
    if status:
        conditions.append(Contract.status == status)
    if search:
        pattern = f"%{search}%"
        conditions.append(
            or_(
                Contract.contract_number.ilike(pattern),
                Contract.company_name.ilike(pattern),
                Contract.contact_name.ilike(pattern),
            )
        )

    total = (
        await db.execute(select(func.count(Contract.id)).where(*conditions))
    ).scalar_one()
    result = await db.execute(
        select(Contract)
        .where(*conditions)
        .order_by(Contract.created_at.desc())
        .offset(offset)
        .limit(limit)
    )
    return list(result.scalars().all()), total


async def contract_stats(db: AsyncSession) -> dict[str, int]:
    return await status_counts(db, Contract)


async def create_contract(
    db: AsyncSession,
    admin: AdminSession,
    *,
    user_id: int,
    package_id: int,
    contract_period: int = DEFAULT_CONTRACT_PERIOD,
    monthly_fee: Decimal | None = None,
    setup_fee: Decimal = Decimal(0),
    is_promotion: bool = False,
    additional_notes: str | None = None,
) -> Contract:
    if contract_period < 1:
        raise InvalidStateError("Contract period must be at least one month")

    user = await db.get(User, user_id)
    if user is None:
        raise InvalidStateError(f"User {user_id} does not exist")
    package = await db.get(Package, package_id)
    if package is None or not package.is_active:
        raise InvalidStateError(f"Package {package_id} does not exist")

    pending = await db.execute(
        select(Contract.id).where(
            Contract.user_id == user_id,
            Contract.status == ContractStatus.PENDING.value,
        )
    )
    if pending.scalar_one_or_none() is not None:
        raise InvalidStateError(f"User {user_id} already has a pending contract")

    fee = Decimal(monthly_fee) if monthly_fee is not None else Decimal(package.price)
    setup = Decimal(setup_fee or 0)

    try:
        async with atomic(db):
            contract_number = await allocate_contract_number(db)
            contract = Contract(
                contract_number=contract_number,
                user_id=user_id,
                package_id=package_id,
                status=ContractStatus.PENDING.value,
                contract_period=contract_period,
                monthly_fee=fee,
                setup_fee=setup,
                total_amount=compute_total_amount(fee, contract_period, setup),
                is_promotion=is_promotion,
                additional_notes=additional_notes,
                contact_name=user.name,
                contact_phone=user.phone,
                contact_email=user.email,
            )
            db.add(contract)
            await db.flush()
            append_log(
                db, EntityType.CONTRACT, contract.id, None,
                ContractStatus.PENDING.value, admin.label, "Contract created",
            )
            await log_audit(
                db,
                action="contract.create",
                entity_type="contract",
                entity_id=contract.id,
                admin_id=admin.admin_id,
                details={"contract_number": contract_number},
            )
    except IntegrityError as exc:
        # Lost the race against a concurrent create for the same user
        raise InvalidStateError(f"User {user_id} already has a pending contract") from exc

    logger.info("Created contract %s for user %d", contract.contract_number, user_id)
    await invalidate_status_counts(Contract.__tablename__)

    from polarad_admin.services.notification import notify_contract_created

    await notify_contract_created(contract, user, package.display_name)
    return contract


async def submit_contract(
    db: AsyncSession, contract_id: int, changed_by: str, signature: dict | None = None
) -> Contract:
    """Record the customer's signature: PENDING -> SUBMITTED."""
    contract = await get_contract(db, contract_id)
    signature = signature or {}
    async with atomic(db):
        apply_transition(
            db, EntityType.CONTRACT, contract, ContractStatus.SUBMITTED,
            changed_by=changed_by, note="Contract signed",
        )
        for name in SIGNATURE_FIELDS:
            value = signature.get(name)
            if value is not None:
                setattr(contract, name, value)
    await invalidate_status_counts(Contract.__tablename__)
    return contract


async def approve_contract(db: AsyncSession, contract_id: int, admin: AdminSession) -> Contract:
    contract = await get_contract(db, contract_id)

    async with atomic(db):
        apply_transition(
            db, EntityType.CONTRACT, contract, ContractStatus.APPROVED,
            changed_by=admin.label, note="Contract approved",
        )
        contract.approved_by = admin.admin_id
        contract.start_date = today_kst()
        contract.end_date = add_months(contract.start_date, contract.contract_period)
        await log_audit(
            db,
            action="contract.approve",
            entity_type="contract",
            entity_id=contract.id,
            admin_id=admin.admin_id,
        )

    await invalidate_status_counts(Contract.__tablename__)

    from polarad_admin.services.notification import notify_contract_approved

    if await notify_contract_approved(contract, contract.user):
        try:
            contract.email_sent_at = datetime.now(timezone.utc)
            await db.commit()
        except Exception:
            await db.rollback()
            logger.exception("Failed to record email_sent_at for contract %d", contract.id)
    return contract


async def reject_contract(
    db: AsyncSession, contract_id: int, admin: AdminSession, reason: str | None = None
) -> Contract:
    contract = await get_contract(db, contract_id)
    reason = (reason or "").strip() or DEFAULT_REJECT_REASON

    async with atomic(db):
        apply_transition(
            db, EntityType.CONTRACT, contract, ContractStatus.REJECTED,
            changed_by=admin.label, note=reason,
        )
        contract.rejected_by = admin.admin_id
        contract.reject_reason = reason
        await log_audit(
            db,
            action="contract.reject",
            entity_type="contract",
            entity_id=contract.id,
            admin_id=admin.admin_id,
            details={"reason": reason},
        )

    await invalidate_status_counts(Contract.__tablename__)

    from polarad_admin.services.notification import notify_contract_rejected

    await notify_contract_rejected(contract, contract.user)
    return contract


async def _simple_transition(
    db: AsyncSession, contract_id: int, target: ContractStatus, changed_by: str, note: str | None
) -> Contract:
    contract = await get_contract(db, contract_id)
    async with atomic(db):
        apply_transition(
            db, EntityType.CONTRACT, contract, target, changed_by=changed_by, note=note
        )
    await invalidate_status_counts(Contract.__tablename__)
    return contract


async def activate_contract(db: AsyncSession, contract_id: int, changed_by: str, note: str | None = None) -> Contract:
    return await _simple_transition(db, contract_id, ContractStatus.ACTIVE, changed_by, note)


async def expire_contract(db: AsyncSession, contract_id: int, changed_by: str, note: str | None = None) -> Contract:
    return await _simple_transition(db, contract_id, ContractStatus.EXPIRED, changed_by, note)


async def cancel_contract(db: AsyncSession, contract_id: int, changed_by: str, note: str | None = None) -> Contract:
    return await _simple_transition(db, contract_id, ContractStatus.CANCELLED, changed_by, note)


async def set_contract_status(
    db: AsyncSession, contract_id: int, status: str, admin: AdminSession, note: str | None = None
) -> Contract:
    """Route a requested status to the matching lifecycle operation."""
    try:
        target = ContractStatus(status)
    except ValueError:
        raise InvalidStateError(f"Unknown contract status: {status}")

    if target == ContractStatus.SUBMITTED:
        return await submit_contract(db, contract_id, admin.label)
    if target == ContractStatus.APPROVED:
        return await approve_contract(db, contract_id, admin)
    if target == ContractStatus.REJECTED:
        return await reject_contract(db, contract_id, admin, note)
    return await _simple_transition(db, contract_id, target, admin.label, note)


async def delete_contract(db: AsyncSession, contract_id: int, admin: AdminSession) -> None:
    """Hard-delete a contract and its logs. Active contracts cannot be deleted."""
    contract = await get_contract(db, contract_id)
    if contract.status == ContractStatus.ACTIVE.value:
        raise InvalidStateError("Active contracts cannot be deleted")

    async with atomic(db):
        await log_audit(
            db,
            action="contract.delete",
            entity_type="contract",
            entity_id=contract.id,
            admin_id=admin.admin_id,
            details={"contract_number": contract.contract_number, "status": contract.status},
        )
        await db.delete(contract)

    await invalidate_status_counts(Contract.__tablename__)
    logger.info("Deleted contract %s", contract.contract_number)
