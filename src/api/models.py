"""
API Models - Request and Response schemas
Using Pydantic for automatic validation and documentation

Money values are returned as decimal strings so clients never see
binary float rounding.
"""

from pydantic import BaseModel, Field
from typing import List, Optional, Union
from uuid import UUID
from decimal import Decimal

from allocation import Allocation
from extraction_pipeline import ExtractionRun
from ledger import Bill, Item, Participant, Shared, Single


# ─── Extraction Models ────────────────────────────────────────────────────────

class ExtractRequest(BaseModel):
    """Recognised receipt text, lines separated by newlines."""
    text: str = Field(..., description="OCR text of one receipt")


class BatchExtractRequest(BaseModel):
    texts: List[str] = Field(..., description="OCR text of several receipts", min_length=1, max_length=20)


class ItemOut(BaseModel):
    id: UUID
    name: str
    price: Decimal        = Field(..., description="Unit price")
    quantity: int         = Field(1, ge=1)
    line_total: Decimal
    assigned_to: Optional[Union[UUID, List[UUID]]] = Field(None, description="Owner id, or ids when shared")
    manually_added: bool = False


class ProcessingStatsOut(BaseModel):
    lines_processed: int
    items_extracted: int
    processing_time_ms: int
    method_used: str      = Field(..., description="'Pattern Matching' | 'Proximity Fallback' | 'Fuzzy Fallback'")
    confidence: float     = Field(..., ge=0, le=1)
    escalated: bool       = Field(False, description="True if the fallback tiers ran")


class ExtractResponse(BaseModel):
    status: str = Field("success", description="Response status")
    items: List[ItemOut]
    stats: ProcessingStatsOut


class BatchExtractItem(BaseModel):
    index: int
    status: str
    items: Optional[List[ItemOut]]       = None
    stats: Optional[ProcessingStatsOut]  = None
    error: Optional[str]                 = None


class BatchExtractResponse(BaseModel):
    status: str       = Field("success", description="Overall status")
    total_texts: int
    successful: int
    failed: int
    results: List[BatchExtractItem]
    total_processing_time_ms: int


# ─── Bill Models ──────────────────────────────────────────────────────────────

class ParticipantOut(BaseModel):
    id: UUID
    name: str
    color_tag: str


class BillOut(BaseModel):
    id: UUID
    version: int
    items: List[ItemOut]
    participants: List[ParticipantOut]
    tax_percent: Decimal
    tip_percent: Decimal
    subtotal: Decimal
    tax_total: Decimal
    tip_total: Decimal
    final_total: Decimal
    created_at: str


class AddItemRequest(BaseModel):
    name: str         = Field(..., min_length=1)
    price: Decimal    = Field(..., ge=0)
    quantity: int     = Field(1, ge=1)


class OwnersRequest(BaseModel):
    participant_ids: List[UUID] = Field(
        default_factory=list,
        description="Empty unassigns, one id assigns, several ids share the item",
    )


class AddParticipantRequest(BaseModel):
    name: str                 = Field(..., min_length=1)
    color_tag: Optional[str]  = Field(None, description="Palette colour; picked automatically when omitted")


class ChargesRequest(BaseModel):
    tax_percent: Optional[Decimal] = Field(None, ge=0, le=100)
    tip_percent: Optional[Decimal] = Field(None, ge=0, le=100)


class ScanResponse(BaseModel):
    status: str = "success"
    added: int
    stats: ProcessingStatsOut
    bill: BillOut


class ShareOut(BaseModel):
    participant_id: UUID
    name: str
    raw_share: Decimal
    tax_share: Decimal
    tip_share: Decimal
    total: Decimal
    amount_due: Decimal
    item_ids: List[UUID]


class SplitResponse(BaseModel):
    status: str                       = Field(..., description="'success' or 'invalid'")
    error: Optional[str]              = Field(None, description="Why the bill cannot be split yet")
    rounding: Optional[str]           = None
    subtotal: Optional[Decimal]       = None
    tax_total: Optional[Decimal]      = None
    tip_total: Optional[Decimal]      = None
    final_total: Optional[Decimal]    = None
    rounding_drift: Optional[Decimal] = None
    shares: List[ShareOut]            = Field(default_factory=list)
    summary: Optional[str]            = None


class SaveResponse(BaseModel):
    status: str
    bill_id: UUID
    saved: bool


class HistoryResponse(BaseModel):
    bills: List[BillOut]


class PaymentLinkResponse(BaseModel):
    service: str
    display_name: str
    url: str


# ─── Health Model ────────────────────────────────────────────────────────────

class HealthResponse(BaseModel):
    """Health check response."""
    status: str  = Field("healthy",           description="Health status")
    service: str = Field("divvy-ledger-api",  description="Service name")
    version: str = Field("1.0.0",             description="API version")


# ─── Converters ───────────────────────────────────────────────────────────────

def item_out(item: Item) -> ItemOut:
    owner = None
    if isinstance(item.owner, Single):
        owner = item.owner.participant_id
    elif isinstance(item.owner, Shared):
        owner = sorted(item.owner.participant_ids, key=str)
    return ItemOut(
        id=item.id,
        name=item.name,
        price=item.price,
        quantity=item.quantity,
        line_total=item.line_total,
        assigned_to=owner,
        manually_added=item.manually_added,
    )


def participant_out(p: Participant) -> ParticipantOut:
    return ParticipantOut(id=p.id, name=p.name, color_tag=p.color_tag)


def bill_out(bill: Bill) -> BillOut:
    return BillOut(
        id=bill.id,
        version=bill.version,
        items=[item_out(i) for i in bill.items],
        participants=[participant_out(p) for p in bill.participants],
        tax_percent=bill.tax_percent,
        tip_percent=bill.tip_percent,
        subtotal=bill.subtotal,
        tax_total=bill.tax_total,
        tip_total=bill.tip_total,
        final_total=bill.final_total,
        created_at=bill.created_at.isoformat(),
    )


def stats_out(run: ExtractionRun) -> ProcessingStatsOut:
    return ProcessingStatsOut(escalated=run.escalated, **run.stats.to_dict())


def split_out(allocation: Allocation, summary: str) -> SplitResponse:
    return SplitResponse(
        status="success",
        rounding=allocation.rounding.value,
        subtotal=allocation.subtotal,
        tax_total=allocation.tax_total,
        tip_total=allocation.tip_total,
        final_total=allocation.final_total,
        rounding_drift=allocation.rounding_drift,
        shares=[
            ShareOut(
                participant_id=s.participant.id,
                name=s.participant.name,
                raw_share=s.raw_share,
                tax_share=s.tax_share,
                tip_share=s.tip_share,
                total=s.total,
                amount_due=s.amount_due,
                item_ids=[i.id for i in s.items],
            )
            for s in allocation.shares
        ],
        summary=summary,
    )
