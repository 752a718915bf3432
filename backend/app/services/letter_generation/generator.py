"""
Document Generator

Dependency-keyed memoisation over build_document.

Each (claim_id, document_type) caches one GeneratedDocument together with the
sha256 of the fields it was built from. A call whose fields hash the same
returns the cached object untouched (same generated_at); any other claim edit
(notes, signature, status flags) is invisible to the key.

At most one generation per (claim_id, document_type) runs at a time. A second
concurrent call is rejected, never queued behind the first.
"""
import json
import logging
import os
import threading
from collections import OrderedDict
from datetime import datetime, timezone
from hashlib import sha256
from typing import Any, Callable, Dict, Optional, Sequence, Set, Tuple

from app.models.claim import (
    ClaimState, Deadline, DocumentType, GeneratedDocument, InterestResult, Party,
)
from app.services.legal.errors import GenerationInProgressError, ValidationError

from .content_builder import build_document, validate_document

logger = logging.getLogger(__name__)

CacheKey = Tuple[str, DocumentType]

DOCUMENT_CACHE_SIZE = int(os.getenv("DOCUMENT_CACHE_SIZE", "512"))


def _party_fields(party: Party) -> Dict[str, Any]:
    return {
        "name": party.name,
        "type": party.type.value if party.type else None,
        "address": list(party.address_parts()),
        "company_number": party.company_number,
    }


def dependency_key(
    claim: ClaimState,
    interest: InterestResult,
    document_type: DocumentType,
    deadlines: Sequence[Deadline] = (),
) -> str:
    """sha256 over the declared inputs of a document, and nothing else."""
    invoice = claim.invoice
    lba_date = claim.effective_lba_date()
    content = {
        "document_type": document_type.value,
        "claimant": _party_fields(claim.claimant),
        "defendant": _party_fields(claim.defendant),
        "invoice": {
            "amount": str(invoice.amount),
            "number": invoice.invoice_number,
            "date_issued": invoice.date_issued.isoformat() if invoice.date_issued else None,
            "due_date": invoice.due_date.isoformat() if invoice.due_date else None,
            "payment_terms": invoice.payment_terms.value if invoice.payment_terms else None,
            "description": invoice.description,
            "currency": invoice.currency,
        },
        "timeline": [
            [e.date.isoformat(), e.type.value, e.description] for e in claim.timeline
        ],
        "lba_sent_date": lba_date.isoformat() if lba_date else None,
        "selected_document_type": (
            claim.selected_document_type.value if claim.selected_document_type else None
        ),
        "interest": interest.to_dict(),
        "deadlines": sorted(
            [d.type.value, d.due_date.isoformat()] for d in deadlines if d.is_active
        ),
    }
    return sha256(json.dumps(content, sort_keys=True).encode()).hexdigest()


class DocumentGenerator:
    """
    Generates and caches documents per claim.

    Input: ClaimState + InterestResult + Deadline[]
    Output: GeneratedDocument

    The cache holds at most `max_entries` documents and evicts the least
    recently used. Only generations currently running are tracked for
    rejection, so nothing is retained per claim once a call returns.
    """

    def __init__(
        self,
        clock: Optional[Callable[[], datetime]] = None,
        max_entries: int = DOCUMENT_CACHE_SIZE,
    ):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self.max_entries = max_entries
        self._cache: "OrderedDict[CacheKey, GeneratedDocument]" = OrderedDict()
        self._in_progress: Set[CacheKey] = set()
        self._registry_lock = threading.Lock()

    def _claim(self, key: CacheKey) -> None:
        with self._registry_lock:
            if key in self._in_progress:
                claim_id, doc_type = key
                logger.warning(f"Rejected concurrent generation of {doc_type.value} for {claim_id}")
                raise GenerationInProgressError(
                    f"{doc_type.value} for claim {claim_id} is already being generated",
                    fields=["claim_id", "document_type"],
                )
            self._in_progress.add(key)

    def _release(self, key: CacheKey) -> None:
        with self._registry_lock:
            self._in_progress.discard(key)

    def _lookup(self, key: CacheKey) -> Optional[GeneratedDocument]:
        with self._registry_lock:
            document = self._cache.get(key)
            if document is not None:
                self._cache.move_to_end(key)
            return document

    def _store(self, key: CacheKey, document: GeneratedDocument) -> None:
        with self._registry_lock:
            self._cache[key] = document
            self._cache.move_to_end(key)
            while len(self._cache) > self.max_entries:
                evicted, _ = self._cache.popitem(last=False)
                logger.info(f"Evicted cached {evicted[1].value} for {evicted[0]}")

    def generate(
        self,
        claim: ClaimState,
        interest: InterestResult,
        deadlines: Sequence[Deadline] = (),
        document_type: Optional[DocumentType] = None,
    ) -> GeneratedDocument:
        """
        Return the document for the claim, rebuilding only when its inputs changed.

        Raises:
            ValidationError: no document type chosen, or the built text fails checks
            IncompleteDataError: required party or invoice fields missing
            GenerationInProgressError: same claim and type already generating
        """
        doc_type = document_type or claim.selected_document_type
        if doc_type is None:
            raise ValidationError("No document type selected", fields=["selected_document_type"])

        cache_key = (claim.claim_id, doc_type)
        self._claim(cache_key)
        try:
            key = dependency_key(claim, interest, doc_type, deadlines)
            cached = self._lookup(cache_key)
            if cached is not None and cached.dependency_key == key:
                logger.info(f"Reusing cached {doc_type.value} for {claim.claim_id}")
                return cached

            document = build_document(
                claim, interest, deadlines, doc_type,
                generated_at=self._clock(),
                dependency_key=key,
            )
            validate_document(document.content, claim, interest)

            self._store(cache_key, document)
            logger.info(f"Generated {doc_type.value} for {claim.claim_id} ({len(document.sections)} sections)")
            return document
        finally:
            self._release(cache_key)

    def cached(self, claim_id: str, document_type: DocumentType) -> Optional[GeneratedDocument]:
        with self._registry_lock:
            return self._cache.get((claim_id, document_type))

    def invalidate(self, claim_id: str, document_type: Optional[DocumentType] = None) -> None:
        """Drop cached documents for a claim (all types when none given)."""
        with self._registry_lock:
            for key in list(self._cache):
                if key[0] == claim_id and (document_type is None or key[1] == document_type):
                    del self._cache[key]
