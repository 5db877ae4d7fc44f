from fastapi import APIRouter, Depends, HTTPException, Query

from fundflow.application.dtos.ledger_dto import (
    AccountSummaryDTO,
    ClassificationDTO,
    EntityRecordsDTO,
    FlowStatsDTO,
    TransactionPageDTO,
)
from fundflow.application.services.ledger_service import LedgerService
from fundflow.domain.ledger.errors import DataSourceError
from fundflow.domain.ledger.statistics import (
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    PageRequest,
    SortField,
    SortOrder,
    TimeRange,
)
from fundflow.domain.ledger.value_objects import EntityId
from fundflow.interfaces.api.dependencies import get_ledger_service

router = APIRouter()


def _entity_id(raw: str) -> str:
    try:
        return EntityId(raw).value
    except ValueError as err:
        raise HTTPException(status_code=422, detail=str(err)) from err


@router.get("/ledger/{entity_id_raw}/records", response_model=EntityRecordsDTO)
async def get_records(
    entity_id_raw: str,
    service: LedgerService = Depends(get_ledger_service),  # noqa: B008
) -> EntityRecordsDTO:
    entity_id = _entity_id(entity_id_raw)
    # No lines is an empty list, not 404: the entity is inactive, not invalid.
    try:
        return await service.list_records(entity_id)
    except DataSourceError as err:
        raise HTTPException(status_code=500, detail=f"Ledger query failed ({err.code})") from err


@router.get("/ledger/{entity_id_raw}/classification", response_model=ClassificationDTO)
async def get_classification(
    entity_id_raw: str,
    service: LedgerService = Depends(get_ledger_service),  # noqa: B008
) -> ClassificationDTO:
    entity_id = _entity_id(entity_id_raw)
    try:
        return await service.get_classification(entity_id)
    except DataSourceError as err:
        raise HTTPException(status_code=500, detail=f"Classification query failed ({err.code})") from err


@router.get("/ledger/{entity_id_raw}/transactions", response_model=TransactionPageDTO)
async def get_transactions(
    entity_id_raw: str,
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    sort_by: SortField = SortField.DATE,
    sort_order: SortOrder = SortOrder.DESC,
    service: LedgerService = Depends(get_ledger_service),  # noqa: B008
) -> TransactionPageDTO:
    entity_id = _entity_id(entity_id_raw)
    request = PageRequest(page=page, page_size=page_size, sort_by=sort_by, sort_order=sort_order)
    try:
        return await service.list_transactions(entity_id, request)
    except DataSourceError as err:
        raise HTTPException(status_code=500, detail=f"Ledger query failed ({err.code})") from err


@router.get("/ledger/{entity_id_raw}/stats", response_model=FlowStatsDTO)
async def get_stats(
    entity_id_raw: str,
    time_range: TimeRange = TimeRange.DAYS_30,
    service: LedgerService = Depends(get_ledger_service),  # noqa: B008
) -> FlowStatsDTO:
    entity_id = _entity_id(entity_id_raw)
    try:
        return await service.get_stats(entity_id, time_range)
    except DataSourceError as err:
        raise HTTPException(status_code=500, detail=f"Ledger query failed ({err.code})") from err


@router.get("/ledger/{entity_id_raw}/summary", response_model=AccountSummaryDTO)
async def get_summary(
    entity_id_raw: str,
    service: LedgerService = Depends(get_ledger_service),  # noqa: B008
) -> AccountSummaryDTO:
    entity_id = _entity_id(entity_id_raw)
    try:
        summary = await service.get_summary(entity_id)
    except DataSourceError as err:
        raise HTTPException(status_code=500, detail=f"Ledger query failed ({err.code})") from err
    if summary is None:
        raise HTTPException(status_code=404, detail="No ledger lines owned by this entity")
    return summary
