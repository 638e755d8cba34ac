from abc import ABC, abstractmethod
from typing import List, Optional
from chatops.models.schemas import ChannelBinding


class IChannelBindingRepository(ABC):
    """Interface for channel -> project binding storage"""

    @abstractmethod
    async def get(self, channel_id: str) -> Optional[ChannelBinding]:
        pass

    @abstractmethod
    async def list_all(self) -> List[ChannelBinding]:
        pass

    @abstractmethod
    async def upsert(self, channel_id: str, team_id: str, project_id: str, configured_by: str) -> ChannelBinding:
        pass

    @abstractmethod
    async def delete(self, channel_id: str) -> bool:
        pass

    @abstractmethod
    async def project_exists(self, project_id: str) -> bool:
        pass
