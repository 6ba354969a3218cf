# Overview: Service-layer operations for document tracking; encapsulates business logic and database work.

"""
Registration paperwork for sold vehicles.

A tracking record is opened in the same commit as the sale and then moves
strictly forward, one stage at a time:

pending_submission -> submitted_to_manufacturer -> received_from_manufacturer
-> sent_to_point_of_sale -> completed

Each step appends a DocumentStage row; stages are never edited.
"""

from __future__ import annotations

from ..extensions import db
from ..models import DocumentStage, DocumentTracking, InventoryItem, Sale
from ..models.documents import DOC_COMPLETED, DOC_PENDING_SUBMISSION, DOCUMENT_STATUSES
from ..validation import NotFoundError
from dealership.time_utils import utcnow
from . import list_filters, notification_service
from .concurrency import lock_for_update, run_with_retry


DOCUMENT_SEARCH_FIELDS = ("customer_name", "motor_fingerprint", "chassis_number")


class DocumentTrackingError(Exception):
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


def next_status(status: str) -> str | None:
    """Following status, or None once completed."""
    position = DOCUMENT_STATUSES.index(status)
    if position + 1 >= len(DOCUMENT_STATUSES):
        return None
    return DOCUMENT_STATUSES[position + 1]


def open_for_sale(sale: Sale, item: InventoryItem, user_id: int | None = None) -> DocumentTracking:
    """Create the tracking record and its first stage. Caller commits."""
    now = utcnow()
    document = DocumentTracking(
        sale_id=sale.id,
        agent_id=sale.agent_id,
        customer_name=sale.customer_name,
        customer_national_id=sale.customer_national_id,
        customer_phone=sale.customer_phone,
        vehicle_description=f"{item.brand} {item.model}" + (f" ({item.color})" if item.color else ""),
        motor_fingerprint=item.motor_fingerprint,
        chassis_number=item.chassis_number,
        status=DOC_PENDING_SUBMISSION,
        updated_by_user_id=user_id,
        created_at=now,
        updated_at=now,
    )
    db.session.add(document)
    db.session.flush()

    db.session.add(DocumentStage(
        document_id=document.id,
        status=DOC_PENDING_SUBMISSION,
        occurred_at=now,
        updated_by_user_id=user_id,
    ))
    db.session.flush()
    return document


def get_document(document_id: int) -> DocumentTracking:
    document = db.session.get(DocumentTracking, document_id)
    if not document:
        raise NotFoundError("Document not found")
    return document


def advance_document(
    document_id: int,
    *,
    user_id: int | None = None,
    notes: str | None = None,
    target_status: str | None = None,
) -> DocumentTracking:
    """
    Move a document one stage forward.

    target_status is optional; when given it must be exactly the next
    status, so stages cannot be skipped or repeated.
    """
    def _op():
        document = lock_for_update(
            db.session.query(DocumentTracking).filter_by(id=document_id)
        ).first()
        if not document:
            raise NotFoundError("Document not found")

        if document.status == DOC_COMPLETED:
            raise DocumentTrackingError("Document is already completed")

        upcoming = next_status(document.status)
        if target_status is not None and target_status != upcoming:
            if target_status not in DOCUMENT_STATUSES:
                raise DocumentTrackingError(
                    f"Unknown document status: {target_status}",
                    details={"allowed": list(DOCUMENT_STATUSES)},
                )
            raise DocumentTrackingError(
                "Documents can only move to the next stage",
                details={"current": document.status, "expected": upcoming, "requested": target_status},
            )

        previous = document.status
        now = utcnow()
        document.status = upcoming
        document.updated_by_user_id = user_id
        document.updated_at = now
        db.session.add(DocumentStage(
            document_id=document.id,
            status=upcoming,
            occurred_at=now,
            updated_by_user_id=user_id,
            notes=notes,
        ))
        notification_service.notify_document_status(document, previous, user_id=user_id)
        db.session.commit()
        return document

    return run_with_retry(_op)


def list_documents(
    *,
    status: str | None = None,
    agent_id: int | None = None,
    search: str | None = None,
    scope_agent_id: int | None = None,
) -> dict:
    """Filtered rows plus per-status counts (counts ignore the status filter)."""
    if status and status not in DOCUMENT_STATUSES:
        raise DocumentTrackingError(
            f"Unknown document status: {status}",
            details={"allowed": list(DOCUMENT_STATUSES)},
        )

    query = db.session.query(DocumentTracking)
    if scope_agent_id is not None:
        query = query.filter(DocumentTracking.agent_id == scope_agent_id)
    if agent_id is not None:
        query = query.filter(DocumentTracking.agent_id == agent_id)

    rows = [doc.to_dict() for doc in query.order_by(DocumentTracking.id.desc()).all()]
    rows = list_filters.search_rows(rows, search, DOCUMENT_SEARCH_FIELDS)

    counts = {s: 0 for s in DOCUMENT_STATUSES}
    for row in rows:
        counts[row["status"]] += 1

    rows = list_filters.filter_equals(rows, status=status)
    return {"documents": rows, "counts": counts, "total": sum(counts.values())}
