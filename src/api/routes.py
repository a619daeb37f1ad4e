"""
API Routes - All API endpoints

Bill sessions live in process memory, keyed by bill id; saved bills go
through the configured repository.
"""

from fastapi import APIRouter, HTTPException, Query
from typing import Dict, Optional
from decimal import Decimal
from uuid import UUID
import time

from loguru import logger

from allocation import RoundingMode
from api.models import (
    AddItemRequest,
    AddParticipantRequest,
    BatchExtractItem,
    BatchExtractRequest,
    BatchExtractResponse,
    BillOut,
    ChargesRequest,
    ExtractRequest,
    ExtractResponse,
    HistoryResponse,
    ItemOut,
    OwnersRequest,
    ParticipantOut,
    PaymentLinkResponse,
    SaveResponse,
    ScanResponse,
    SplitResponse,
    bill_out,
    item_out,
    participant_out,
    split_out,
    stats_out,
)
from app_settings import AppSettings, load_config
from bill_repository import BillRepository, build_repository
from bill_session import BillSession
from errors import CollaboratorFailure, DivvyError, UnknownEntity
from extraction_pipeline import ExtractionPipeline
from payment_links import PaymentService
from split_report import format_split_summary

# Create router
router = APIRouter()


class ApiState:
    """Settings, pipeline, repository and live sessions shared by the endpoints."""

    def __init__(self, config: Optional[dict] = None, repository: Optional[BillRepository] = None):
        self.configure(config if config is not None else load_config(), repository)

    def configure(self, config: dict, repository: Optional[BillRepository] = None):
        self.config = config
        self.settings = AppSettings.from_config(config)
        self.pipeline = ExtractionPipeline.from_config(config)
        self.repository = repository or build_repository(config)
        self.sessions: Dict[UUID, BillSession] = {}

    def new_session(self) -> BillSession:
        session = BillSession(self.settings, self.pipeline, self.repository)
        self.sessions[session.id] = session
        logger.info(f"[API] new bill {session.id}")
        return session

    def session(self, bill_id: UUID) -> BillSession:
        session = self.sessions.get(bill_id)
        if session is None:
            raise UnknownEntity(f"No open bill {bill_id}")
        return session

    def close_session(self, bill_id: UUID) -> None:
        if self.sessions.pop(bill_id, None) is None:
            raise UnknownEntity(f"No open bill {bill_id}")
        logger.info(f"[API] closed bill {bill_id}")


state = ApiState()


# ==================== UTILITY FUNCTIONS ====================

def to_http(e: Exception) -> HTTPException:
    """Map a domain error onto an HTTP status."""
    if isinstance(e, HTTPException):
        return e
    if isinstance(e, UnknownEntity):
        return HTTPException(404, detail=str(e))
    if isinstance(e, ValueError):
        return HTTPException(400, detail=str(e))
    if isinstance(e, CollaboratorFailure):
        return HTTPException(502, detail=str(e))
    if isinstance(e, DivvyError):
        return HTTPException(409, detail=str(e))
    logger.exception(f"Unexpected error: {e}")
    return HTTPException(500, detail=str(e))


# ==================== EXTRACTION ====================

@router.post("/extract", response_model=ExtractResponse, tags=["Extraction"])
async def extract_items(request: ExtractRequest):
    """
    **Extract line items from recognised receipt text**

    **Example:**
    ```bash
    curl -X POST http://localhost:8000/api/v1/extract \\
      -H "Content-Type: application/json" \\
      -d '{"text": "Burger 12.99\\nFries 4.99\\nSUBTOTAL 17.98"}'
    ```
    """
    try:
        run = state.pipeline.extract(request.text)
        return ExtractResponse(
            items=[item_out(i) for i in run.items],
            stats=stats_out(run),
        )
    except Exception as e:
        raise to_http(e)


@router.post("/extract/batch", response_model=BatchExtractResponse, tags=["Extraction"])
async def extract_batch(request: BatchExtractRequest):
    """
    **Extract several receipts in one request**

    Each text is processed independently; one failure does not stop the rest.
    """
    start = time.time()
    results = []
    for index, text in enumerate(request.texts):
        try:
            run = state.pipeline.extract(text)
            results.append(BatchExtractItem(
                index=index,
                status="success",
                items=[item_out(i) for i in run.items],
                stats=stats_out(run),
            ))
        except DivvyError as e:
            logger.warning(f"[API] batch text {index} failed: {e}")
            results.append(BatchExtractItem(index=index, status="error", error=str(e)))

    successful = sum(1 for r in results if r.status == "success")
    return BatchExtractResponse(
        total_texts=len(request.texts),
        successful=successful,
        failed=len(results) - successful,
        results=results,
        total_processing_time_ms=int((time.time() - start) * 1000),
    )


# ==================== BILLS ====================

@router.post("/bills", response_model=BillOut, status_code=201, tags=["Bills"])
async def create_bill():
    """New bill carrying the configured tax, tip and default participants."""
    return bill_out(state.new_session().bill)


@router.get("/bills/{bill_id}", response_model=BillOut, tags=["Bills"])
async def get_bill(bill_id: UUID):
    try:
        return bill_out(state.session(bill_id).bill)
    except Exception as e:
        raise to_http(e)


@router.delete("/bills/{bill_id}", status_code=204, tags=["Bills"])
async def close_bill(bill_id: UUID):
    """Close an open bill. Saved history is not touched."""
    try:
        state.close_session(bill_id)
    except Exception as e:
        raise to_http(e)


@router.post("/bills/{bill_id}/scan", response_model=ScanResponse, tags=["Bills"])
async def scan_into_bill(bill_id: UUID, request: ExtractRequest):
    """Run extraction on the text and append the items to the bill."""
    try:
        session = state.session(bill_id)
        run = session.scan_text(request.text)
        return ScanResponse(
            added=run.stats.items_extracted,
            stats=stats_out(run),
            bill=bill_out(session.bill),
        )
    except Exception as e:
        raise to_http(e)


@router.post("/bills/{bill_id}/items", response_model=ItemOut, status_code=201, tags=["Bills"])
async def add_item(bill_id: UUID, request: AddItemRequest):
    try:
        item = state.session(bill_id).add_item(request.name, request.price, request.quantity)
        return item_out(item)
    except Exception as e:
        raise to_http(e)


@router.delete("/bills/{bill_id}/items/{item_id}", response_model=BillOut, tags=["Bills"])
async def remove_item(bill_id: UUID, item_id: UUID):
    try:
        session = state.session(bill_id)
        session.remove_item(item_id)
        return bill_out(session.bill)
    except Exception as e:
        raise to_http(e)


@router.put("/bills/{bill_id}/items/{item_id}/owners", response_model=ItemOut, tags=["Bills"])
async def set_item_owners(bill_id: UUID, item_id: UUID, request: OwnersRequest):
    """Empty list unassigns, one id assigns, several ids share the item evenly."""
    try:
        item = state.session(bill_id).set_owners(item_id, request.participant_ids)
        return item_out(item)
    except Exception as e:
        raise to_http(e)


@router.post("/bills/{bill_id}/participants", response_model=ParticipantOut, status_code=201, tags=["Bills"])
async def add_participant(bill_id: UUID, request: AddParticipantRequest):
    try:
        participant = state.session(bill_id).add_participant(request.name, request.color_tag)
        return participant_out(participant)
    except Exception as e:
        raise to_http(e)


@router.delete("/bills/{bill_id}/participants/{participant_id}", response_model=BillOut, tags=["Bills"])
async def remove_participant(bill_id: UUID, participant_id: UUID):
    """Their items stay on the bill and become unassigned (or lose one sharer)."""
    try:
        session = state.session(bill_id)
        session.remove_participant(participant_id)
        return bill_out(session.bill)
    except Exception as e:
        raise to_http(e)


@router.put("/bills/{bill_id}/charges", response_model=BillOut, tags=["Bills"])
async def set_charges(bill_id: UUID, request: ChargesRequest):
    try:
        session = state.session(bill_id)
        return bill_out(session.set_charges(request.tax_percent, request.tip_percent))
    except Exception as e:
        raise to_http(e)


@router.post("/bills/{bill_id}/split", response_model=SplitResponse, tags=["Bills"])
async def split(bill_id: UUID, rounding: Optional[RoundingMode] = Query(None)):
    """
    **Split the bill**

    Returns the validation message (status 'invalid') when the bill has no
    items, no participants, or unassigned items.
    """
    try:
        session = state.session(bill_id)
        allocation = session.split(rounding)
        if allocation is None:
            return SplitResponse(status="invalid", error=session.split_error)
        summary = format_split_summary(session.bill, allocation, state.settings.currency_code)
        return split_out(allocation, summary)
    except Exception as e:
        raise to_http(e)


@router.post("/bills/{bill_id}/save", response_model=SaveResponse, tags=["History"])
async def save_bill(bill_id: UUID):
    try:
        saved = state.session(bill_id).save()
        return SaveResponse(status="success", bill_id=bill_id, saved=saved)
    except Exception as e:
        raise to_http(e)


# ==================== HISTORY ====================

@router.get("/history", response_model=HistoryResponse, tags=["History"])
async def history():
    try:
        return HistoryResponse(bills=[bill_out(b) for b in state.repository.load_all()])
    except Exception as e:
        raise to_http(e)


@router.delete("/history/{bill_id}", status_code=204, tags=["History"])
async def delete_saved(bill_id: UUID):
    try:
        state.repository.delete(bill_id)
    except Exception as e:
        raise to_http(e)


# ==================== PAYMENTS ====================

@router.get("/payment-link", response_model=PaymentLinkResponse, tags=["Payments"])
async def payment_link(
    service: PaymentService = Query(..., description="venmo | cash_app | paypal"),
    username: str = Query(..., min_length=1),
    amount: Decimal = Query(..., ge=0),
):
    try:
        return PaymentLinkResponse(
            service=service.value,
            display_name=service.display_name,
            url=service.payment_url(username, amount),
        )
    except Exception as e:
        raise to_http(e)
