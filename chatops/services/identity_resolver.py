from typing import Optional
import structlog
from chatops.models.schemas import ExternalIdentity, InternalUser
from chatops.repositories.interfaces.user_directory import IUserDirectory

logger = structlog.get_logger()


class IdentityResolver:
    """Maps chat identities onto EZTest accounts and checks project access"""

    def __init__(self, directory: IUserDirectory):
        self.directory = directory

    async def resolve_identity(self, identity: ExternalIdentity) -> Optional[InternalUser]:
        # Email first, then the principal name (UPNs are email-shaped). Exact matches only.
        for source, value in (("email", identity.email), ("principal_name", identity.principal_name)):
            if not value:
                continue
            user = await self.directory.find_by_email(value)
            if user:
                logger.info("Mapped chat user", matched_on=source, user_id=user.id)
                return user

        logger.warning(
            "Could not map chat user",
            object_id=identity.object_id,
            email=identity.email,
            principal_name=identity.principal_name,
        )
        return None

    async def has_access(self, user_id: str, project_id: str, permission: Optional[str] = None) -> bool:
        membership = await self.directory.get_membership(user_id, project_id)
        if membership is None:
            logger.info("User is not a project member", user_id=user_id, project_id=project_id)
            return False

        _, permissions = membership
        if permission and permission not in permissions:
            logger.info("User lacks permission", user_id=user_id, project_id=project_id, permission=permission)
            return False
        return True

    async def get_project_role(self, user_id: str, project_id: str) -> Optional[str]:
        membership = await self.directory.get_membership(user_id, project_id)
        return membership[0] if membership else None
