from abc import ABC, abstractmethod
from typing import Optional, Set, Tuple
from chatops.models.schemas import InternalUser


class IUserDirectory(ABC):
    """Read access to EZTest accounts, project membership and role permissions"""

    @abstractmethod
    async def find_by_email(self, email: str) -> Optional[InternalUser]:
        """Exact (case-sensitive) lookup on the account email"""
        pass

    @abstractmethod
    async def get_membership(self, user_id: str, project_id: str) -> Optional[Tuple[str, Set[str]]]:
        """Return (role name, permission names) if the user is a project member, else None"""
        pass
