from pydantic import BaseModel, Field


class NodeDTO(BaseModel):
    id: str
    name: str
    total_in: float
    total_out: float
    count_in: int
    count_out: int
    transaction_types: list[str]
    classification: str      # "ordinary" | "receiving account" | ...
    category: str            # "green" | "amber" | "purple" | "red" | "blue"
    color: str
    visual_weight: float
    level: int | None = None


class EdgeDTO(BaseModel):
    source: str
    target: str
    type: str
    direction: str           # "inflow" | "outflow"
    amount: float
    count: int
    last_seen: str | None = None


class GraphDTO(BaseModel):
    nodes: list[NodeDTO]
    edges: list[EdgeDTO]


class BatchRequestDTO(BaseModel):
    entity_ids: list[str] = Field(min_length=1, max_length=20)


class BatchItemDTO(BaseModel):
    entity_id: str
    success: bool
    graph: GraphDTO | None = None
    error: str | None = None


class BatchResultDTO(BaseModel):
    items: list[BatchItemDTO]
    requested_count: int
    success_count: int


class AssociationRuleDTO(BaseModel):
    min_amount: float = Field(default=500.0, ge=0)
    max_nodes_per_level: int = Field(default=15, ge=1, le=200)
    enable_smart_filter: bool = True
    include_indirect_links: bool = True
    recent_window_days: int = Field(default=30, ge=0)


class DiscoveryRequestDTO(BaseModel):
    root_ids: list[str] = Field(min_length=1, max_length=20)
    max_depth: int = Field(default=3, ge=1, le=10)
    rules: AssociationRuleDTO = Field(default_factory=AssociationRuleDTO)


class LevelStatsDTO(BaseModel):
    level: int
    node_count: int
    link_count: int


class FetchFailureDTO(BaseModel):
    entity_id: str
    level: int
    code: str
    message: str


class DiscoveryResultDTO(BaseModel):
    nodes: list[NodeDTO]
    edges: list[EdgeDTO]
    level_stats: list[LevelStatsDTO]
    total_levels: int
    failures: list[FetchFailureDTO] = []
    truncated: bool = False  # True when a level was capped by max_nodes_per_level
