from fastapi import APIRouter, Depends, HTTPException

from fundflow.application.dtos.graph_dto import (
    BatchRequestDTO,
    BatchResultDTO,
    DiscoveryRequestDTO,
    DiscoveryResultDTO,
    GraphDTO,
)
from fundflow.application.services.discovery_service import InvalidDiscoveryRequest
from fundflow.application.services.graph_service import GraphService
from fundflow.domain.ledger.errors import DataSourceError, EntityNotFoundError
from fundflow.domain.ledger.value_objects import EntityId
from fundflow.interfaces.api.dependencies import get_graph_service

router = APIRouter()


def _entity_id(raw: str) -> str:
    try:
        return EntityId(raw).value
    except ValueError as err:
        raise HTTPException(status_code=422, detail=str(err)) from err


async def _graph(entity_id_raw: str, service: GraphService, *, node_only: bool) -> GraphDTO:
    entity_id = _entity_id(entity_id_raw)
    try:
        return await service.get_graph(entity_id, node_only=node_only)
    except EntityNotFoundError as err:
        raise HTTPException(status_code=404, detail="No ledger activity for this entity") from err
    except DataSourceError as err:
        raise HTTPException(status_code=502, detail=f"Ledger source failed ({err.code})") from err


# Static paths before /graph/{entity_id_raw}.
@router.post("/graph/batch", response_model=BatchResultDTO)
async def post_batch(
    body: BatchRequestDTO,
    service: GraphService = Depends(get_graph_service),  # noqa: B008
) -> BatchResultDTO:
    invalid = []
    for raw in body.entity_ids:
        try:
            EntityId(raw)
        except ValueError as err:
            invalid.append({"entity_id": raw, "error": str(err)})
    if invalid:
        raise HTTPException(status_code=422, detail=invalid)
    return await service.get_batch([EntityId(raw).value for raw in body.entity_ids])


@router.post("/graph/discover", response_model=DiscoveryResultDTO)
async def post_discover(
    body: DiscoveryRequestDTO,
    service: GraphService = Depends(get_graph_service),  # noqa: B008
) -> DiscoveryResultDTO:
    body = body.model_copy(update={"root_ids": [_entity_id(raw) for raw in body.root_ids]})
    try:
        return await service.discover(body)
    except InvalidDiscoveryRequest as err:
        raise HTTPException(status_code=422, detail=str(err)) from err


@router.get("/graph/{entity_id_raw}/node-only", response_model=GraphDTO)
async def get_node_only(
    entity_id_raw: str,
    service: GraphService = Depends(get_graph_service),  # noqa: B008
) -> GraphDTO:
    return await _graph(entity_id_raw, service, node_only=True)


@router.get("/graph/{entity_id_raw}", response_model=GraphDTO)
async def get_graph(
    entity_id_raw: str,
    service: GraphService = Depends(get_graph_service),  # noqa: B008
) -> GraphDTO:
    return await _graph(entity_id_raw, service, node_only=False)
