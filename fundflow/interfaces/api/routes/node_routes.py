from fastapi import APIRouter, Depends, HTTPException

from fundflow.application.dtos.ledger_dto import NodeDetailDTO
from fundflow.application.services.ledger_service import LedgerService
from fundflow.domain.ledger.errors import DataSourceError
from fundflow.domain.ledger.value_objects import EntityId
from fundflow.interfaces.api.dependencies import get_ledger_service

router = APIRouter()


@router.get("/node/{entity_id_raw}", response_model=NodeDetailDTO)
async def get_node_detail(
    entity_id_raw: str,
    service: LedgerService = Depends(get_ledger_service),  # noqa: B008
) -> NodeDetailDTO:
    try:
        entity_id = EntityId(entity_id_raw).value
    except ValueError as err:
        raise HTTPException(status_code=422, detail=str(err)) from err

    try:
        detail = await service.get_node_detail(entity_id)
    except DataSourceError as err:
        raise HTTPException(status_code=500, detail=f"Node query failed ({err.code})") from err
    if detail is None:
        raise HTTPException(status_code=404, detail="No ledger activity for this entity")
    return detail
