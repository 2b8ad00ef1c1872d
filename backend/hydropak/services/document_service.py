# Overview: Allocates human-readable order and invoice numbers.

from __future__ import annotations

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import DocumentSequence


ORDER_SEQUENCE = "ORDER"
INVOICE_SEQUENCE = "INVOICE"


class DocumentSequenceError(Exception):
    """Raised when document sequence operations fail."""
    pass


def _current_next(document_type: str) -> int:
    return (
        db.session.query(DocumentSequence.next_number)
        .filter_by(document_type=document_type)
        .scalar()
    )


def next_document_number(document_type: str) -> int:
    """
    Allocate the next number for a document type inside the caller's transaction.

    The UPDATE takes the row lock on databases that have one, so concurrent
    allocations serialize on the sequence row. The first allocation for a
    type creates the row.
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
        return _current_next(document_type) - 1

    seq = DocumentSequence(document_type=document_type, next_number=2)
    try:
        with db.session.begin_nested():
            db.session.add(seq)
    except IntegrityError:
        # Another transaction created the row first
        result = db.session.execute(stmt)
        if not result.rowcount:
            raise
        db.session.flush()
        return _current_next(document_type) - 1
    return 1
