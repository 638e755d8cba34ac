from abc import ABC, abstractmethod
from chatops.models.schemas import ChatActivity


class IChatConnector(ABC):
    """Interface for posting bot replies back into the conversation an activity came from.

    Implementations raise ReplyDeliveryError when the reply cannot be delivered.
    """

    @abstractmethod
    async def send_reply(self, activity: ChatActivity, text: str) -> None:
        pass
