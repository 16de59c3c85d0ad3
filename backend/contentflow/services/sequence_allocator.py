"""Per-namespace content code allocation backed by counter rows."""

from __future__ import annotations

import logging
import os
import re
import time
from uuid import UUID, uuid4

import sqlalchemy as sa
from prometheus_client import Counter
from sqlalchemy.orm import Session

from .. import models
from ..database import insert_ignoring_conflicts
from .errors import IdentifierAllocationExhausted

# purpose: mint human-readable content codes that never repeat within a namespace
# inputs: SQLAlchemy session, namespace (content profile) code
# outputs: "{NAMESPACE}-{NNN}" identifiers, counter maintenance helpers
# status: active

FALLBACK_NAMESPACE = "GEN"
SEQUENCE_START = int(os.getenv("CONTENT_CODE_START", "1001"))
PAD_WIDTH = int(os.getenv("CONTENT_CODE_PAD_WIDTH", "3"))
MAX_ATTEMPTS = int(os.getenv("ALLOCATION_MAX_ATTEMPTS", "50"))

logger = logging.getLogger(__name__)

FALLBACK_ALLOCATIONS = Counter(
    "contentflow_identifier_fallbacks",
    "Content codes minted through the random-suffix fallback",
    ["namespace"],
)


def normalize_namespace(namespace_code: str | None) -> str | None:
    if namespace_code is None:
        return None
    normalized = namespace_code.strip().upper()
    return normalized or None


def resolve_namespace(db: Session, namespace_code: str | None) -> str:
    """Return the namespace to allocate in, falling back to ``GEN``."""

    normalized = normalize_namespace(namespace_code)
    if normalized is None or normalized == FALLBACK_NAMESPACE:
        return FALLBACK_NAMESPACE
    known = (
        db.query(models.ContentProfile.id)
        .filter(models.ContentProfile.code == normalized)
        .first()
    )
    if known is None:
        logger.info("Unknown namespace %s, allocating in %s", normalized, FALLBACK_NAMESPACE)
        return FALLBACK_NAMESPACE
    return normalized


def format_identifier(namespace: str, value: int) -> str:
    return f"{namespace}-{str(value).zfill(PAD_WIDTH)}"


def identifier_in_use(db: Session, identifier: str) -> bool:
    """Check the ledger and the live column; either may hold the code."""

    in_ledger = (
        db.query(models.UsedContentCode.code)
        .filter(models.UsedContentCode.code == identifier)
        .first()
    )
    if in_ledger is not None:
        return True
    on_record = (
        db.query(models.ContentRecord.id)
        .filter(models.ContentRecord.content_code == identifier)
        .first()
    )
    return on_record is not None


def _ensure_counter(db: Session, namespace: str) -> None:
    insert_ignoring_conflicts(
        db,
        models.SequenceCounter,
        {"namespace_code": namespace, "next_value": SEQUENCE_START},
        ["namespace_code"],
    )


def _take_next_value(db: Session, namespace: str) -> int:
    # The increment and the read are one statement; the row lock on the
    # counter linearizes concurrent callers.
    stmt = (
        sa.update(models.SequenceCounter)
        .where(models.SequenceCounter.namespace_code == namespace)
        .values(next_value=models.SequenceCounter.next_value + 1)
        .returning(models.SequenceCounter.next_value)
        .execution_options(synchronize_session=False)
    )
    return db.execute(stmt).scalar_one() - 1


def allocate_identifier(db: Session, namespace_code: str | None) -> str:
    """Allocate the next identifier for ``namespace_code``.

    The counter row is created lazily. A candidate that is already taken
    (only possible after manual edits to codes) makes the allocator move on
    to the next value; after ``MAX_ATTEMPTS`` collisions it mints a
    timestamped identifier with a random suffix instead.
    """

    namespace = resolve_namespace(db, namespace_code)
    _ensure_counter(db, namespace)
    for attempt in range(1, MAX_ATTEMPTS + 1):
        candidate = format_identifier(namespace, _take_next_value(db, namespace))
        if not identifier_in_use(db, candidate):
            return candidate
        logger.info(
            "Identifier %s already taken (attempt %d of %d)", candidate, attempt, MAX_ATTEMPTS
        )

    fallback = f"{namespace}-{int(time.time())}-{uuid4().hex[:4].upper()}"
    logger.warning(
        "Counter for namespace %s kept colliding; using fallback identifier %s",
        namespace,
        fallback,
    )
    FALLBACK_ALLOCATIONS.labels(namespace).inc()
    if identifier_in_use(db, fallback):
        raise IdentifierAllocationExhausted(
            f"could not allocate a unique identifier in namespace {namespace}"
        )
    return fallback


def register_identifier(
    db: Session,
    identifier: str,
    *,
    namespace: str,
    record_id: UUID | None = None,
) -> models.UsedContentCode:
    """Record ``identifier`` in the permanent ledger of issued codes."""

    entry = models.UsedContentCode(
        code=identifier,
        namespace_code=namespace,
        record_id=record_id,
    )
    db.add(entry)
    db.flush()
    return entry


def _highest_issued_value(db: Session, namespace: str) -> int | None:
    pattern = re.compile(rf"^{re.escape(namespace)}-?(\d+)$")
    ledger_codes = [
        row.code
        for row in db.query(models.UsedContentCode.code).filter(
            models.UsedContentCode.code.like(f"{namespace}%")
        )
    ]
    record_codes = [
        row.content_code
        for row in db.query(models.ContentRecord.content_code).filter(
            models.ContentRecord.content_code.like(f"{namespace}%")
        )
    ]
    values = [
        int(match.group(1))
        for match in (pattern.match(code) for code in ledger_codes + record_codes)
        if match
    ]
    return max(values) if values else None


def reseed_counter(db: Session, namespace_code: str | None) -> models.SequenceCounter:
    """Raise a namespace counter past every code already issued.

    Never lowers ``next_value``, so values handed out earlier stay unique.
    """

    namespace = resolve_namespace(db, namespace_code)
    _ensure_counter(db, namespace)
    highest = _highest_issued_value(db, namespace)
    if highest is not None:
        db.execute(
            sa.update(models.SequenceCounter)
            .where(
                models.SequenceCounter.namespace_code == namespace,
                models.SequenceCounter.next_value < highest + 1,
            )
            .values(next_value=highest + 1)
            .execution_options(synchronize_session=False)
        )
    counter = db.get(models.SequenceCounter, namespace, populate_existing=True)
    logger.info("Namespace %s counter now at %d", namespace, counter.next_value)
    return counter


def list_counters(db: Session) -> list[models.SequenceCounter]:
    return (
        db.query(models.SequenceCounter)
        .order_by(models.SequenceCounter.namespace_code.asc())
        .all()
    )
