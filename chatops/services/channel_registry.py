from typing import List, Optional
import structlog
from chatops.models.schemas import ChannelBinding
from chatops.repositories.interfaces.channel_binding_repository import IChannelBindingRepository
from chatops.core.exceptions import BindingNotFoundError, ProjectNotFoundError

logger = structlog.get_logger()


class ChannelRegistry:
    """Maps chat channels to EZTest projects.

    A channel is bound to at most one project; a project can back any number
    of channels.
    """

    def __init__(self, repository: IChannelBindingRepository):
        self.repository = repository

    async def resolve(self, channel_id: str) -> Optional[str]:
        """Project bound to the channel, or None when the channel is not configured"""
        if not channel_id:
            return None
        binding = await self.repository.get(channel_id)
        if binding is None:
            logger.info("Channel not configured with a project", channel_id=channel_id)
            return None
        return binding.project_id

    async def bind(self, channel_id: str, team_id: str, project_id: str, actor: str) -> ChannelBinding:
        """Bind (or re-bind) a channel. Raises ProjectNotFoundError before writing anything."""
        if not await self.repository.project_exists(project_id):
            logger.warning("Refusing to bind channel to unknown project", channel_id=channel_id, project_id=project_id)
            raise ProjectNotFoundError(project_id)

        binding = await self.repository.upsert(channel_id, team_id, project_id, actor)
        logger.info("Channel configured", channel_id=channel_id, project_id=project_id, configured_by=actor)
        return binding

    async def unbind(self, channel_id: str) -> None:
        if not await self.repository.delete(channel_id):
            raise BindingNotFoundError(channel_id)
        logger.info("Channel unconfigured", channel_id=channel_id)

    async def get(self, channel_id: str) -> Optional[ChannelBinding]:
        return await self.repository.get(channel_id)

    async def list_bindings(self) -> List[ChannelBinding]:
        return await self.repository.list_all()
