# Overview: Human-readable document numbers (sales, transfers).

from __future__ import annotations

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import DocumentSequence


SALE_PREFIX = "S"
TRANSFER_PREFIX = "TRF"


class DocumentSequenceError(Exception):
    """Raised when document sequence operations fail."""
    pass


def _read_allocated(document_type: str) -> int:
    current = (
        db.session.query(DocumentSequence.next_number)
        .filter_by(document_type=document_type)
        .scalar()
    )
    return current - 1


def next_document_number(*, document_type: str, prefix: str, pad: int = 4) -> str:
    """
    Allocate the next document number for a document type.

    Runs inside the caller's transaction (flush only) so the number is
    released again if the surrounding operation rolls back. The UPDATE
    takes the row lock on databases that have one.
    """
    if not document_type:
        raise DocumentSequenceError("document_type is required")

    stmt = (
        update(DocumentSequence)
        .where(DocumentSequence.document_type == document_type)
        .values(next_number=DocumentSequence.next_number + 1)
    )

    result = db.session.execute(stmt)
    if result.rowcount:
        db.session.flush()
        next_num = _read_allocated(document_type)
    else:
        seq = DocumentSequence(document_type=document_type, next_number=2)
        try:
            with db.session.begin_nested():
                db.session.add(seq)
            next_num = 1
        except IntegrityError:
            # Another writer created the row first
            result = db.session.execute(stmt)
            if not result.rowcount:
                raise
            db.session.flush()
            next_num = _read_allocated(document_type)

    return f"{prefix}-{next_num:0{pad}d}"
