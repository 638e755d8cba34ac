from fastapi import APIRouter, Depends, HTTPException, status

from chatops.models.schemas import ChannelBinding, ChannelBindingList, ChannelBindingUpsert
from chatops.services.channel_registry import ChannelRegistry
from chatops.core.dependencies import get_channel_registry
from chatops.core.exceptions import BindingNotFoundError, ProjectNotFoundError
from chatops.core.security import require_admin_key

router = APIRouter(prefix="/channels", tags=["channels"], dependencies=[Depends(require_admin_key)])


@router.get("/", response_model=ChannelBindingList)
async def list_channels(registry: ChannelRegistry = Depends(get_channel_registry)):
    """List all configured channels"""
    bindings = await registry.list_bindings()
    return ChannelBindingList(items=bindings, total=len(bindings))


@router.get("/{channel_id}", response_model=ChannelBinding)
async def get_channel(channel_id: str, registry: ChannelRegistry = Depends(get_channel_registry)):
    binding = await registry.get(channel_id)
    if not binding:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Channel is not configured"
        )
    return binding


@router.put("/{channel_id}", response_model=ChannelBinding)
async def configure_channel(
    channel_id: str,
    request: ChannelBindingUpsert,
    registry: ChannelRegistry = Depends(get_channel_registry)
):
    """Bind a channel to a project, replacing any existing binding"""
    try:
        return await registry.bind(channel_id, request.team_id, request.project_id, request.configured_by)
    except ProjectNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e)
        )


@router.delete("/{channel_id}", status_code=status.HTTP_204_NO_CONTENT)
async def unconfigure_channel(channel_id: str, registry: ChannelRegistry = Depends(get_channel_registry)):
    try:
        await registry.unbind(channel_id)
    except BindingNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e)
        )
