from typing import Optional, Set, Tuple
from sqlalchemy.orm import Session
from chatops.repositories.interfaces.user_directory import IUserDirectory
from chatops.models.database import ProjectMemberModel, UserModel
from chatops.models.schemas import InternalUser


class SQLUserDirectory(IUserDirectory):
    """Reads users and project membership from the shared EZTest database"""

    def __init__(self, db: Session):
        self.db = db

    async def find_by_email(self, email: str) -> Optional[InternalUser]:
        db_user = self.db.query(UserModel).filter(UserModel.email == email).first()
        if not db_user:
            return None
        return InternalUser(
            id=db_user.id,
            email=db_user.email,
            name=db_user.name,
            role_name=db_user.role.name if db_user.role else None,
        )

    async def get_membership(self, user_id: str, project_id: str) -> Optional[Tuple[str, Set[str]]]:
        member = (
            self.db.query(ProjectMemberModel)
            .filter(ProjectMemberModel.project_id == project_id, ProjectMemberModel.user_id == user_id)
            .first()
        )
        if not member:
            return None

        role = member.user.role if member.user else None
        if role is None:
            return "", set()
        permissions = {rp.permission.name for rp in role.permissions if rp.permission}
        return role.name, permissions
