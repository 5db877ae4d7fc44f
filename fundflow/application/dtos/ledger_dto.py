from pydantic import BaseModel

from .graph_dto import NodeDTO


class TransactionRecordDTO(BaseModel):
    owner_id: str
    owner_name: str | None = None
    id_document: str | None = None
    timestamp: str | None = None
    amount: str              # Decimal as string, no float rounding
    direction: str           # "in" | "out"
    counterpart_id: str
    counterpart_name: str | None = None
    counterpart_bank: str | None = None
    description: str | None = None
    transaction_type: str
    running_balance: str | None = None


class EntityRecordsDTO(BaseModel):
    entity_id: str
    records: list[TransactionRecordDTO]


class ClassificationDTO(BaseModel):
    entity_id: str
    tag: str | None = None


class PaginationDTO(BaseModel):
    current_page: int
    page_size: int
    total_count: int
    total_pages: int
    has_next: bool
    has_prev: bool


class TransactionPageDTO(BaseModel):
    entity_id: str
    sort_by: str             # "date" | "amount"
    sort_order: str          # "asc" | "desc"
    records: list[TransactionRecordDTO]
    pagination: PaginationDTO


class FlowStatsDTO(BaseModel):
    entity_id: str
    time_range: str          # "7d" | "30d" | "90d" | "1y" | "all"
    window_start: str | None = None
    window_end: str | None = None
    in_count: int
    out_count: int
    total_in: str
    total_out: str
    net_flow: str
    max_amount: str
    counterparty_count: int


class TypeTotalsDTO(BaseModel):
    transaction_type: str
    count: int
    amount: str


class AccountSummaryDTO(BaseModel):
    entity_id: str
    first_transaction_time: str | None = None
    last_transaction_time: str | None = None
    transaction_count: int
    in_count: int
    out_count: int
    total_in: str
    total_out: str
    avg_in: str | None = None
    avg_out: str | None = None
    peak_date: str | None = None
    peak_count: int
    by_type: list[TypeTotalsDTO]
    in_out_ratio: float | None = None
    classification: str | None = None


class NodeDetailDTO(BaseModel):
    node: NodeDTO
    id_document: str | None = None
    summary: AccountSummaryDTO | None = None
    recent_transactions: list[TransactionRecordDTO]
