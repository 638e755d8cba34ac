import uuid
from typing import List, Optional
from sqlalchemy.orm import Session
from chatops.repositories.interfaces.channel_binding_repository import IChannelBindingRepository
from chatops.models.database import ChannelBindingModel, ProjectModel
from chatops.models.schemas import ChannelBinding


class SQLChannelBindingRepository(IChannelBindingRepository):
    """SQLAlchemy implementation of channel binding storage"""

    def __init__(self, db: Session):
        self.db = db

    async def get(self, channel_id: str) -> Optional[ChannelBinding]:
        db_binding = self._find(channel_id)
        if db_binding:
            return self._to_schema(db_binding)
        return None

    async def list_all(self) -> List[ChannelBinding]:
        db_bindings = (
            self.db.query(ChannelBindingModel)
            .order_by(ChannelBindingModel.created_at.desc())
            .all()
        )
        return [self._to_schema(b) for b in db_bindings]

    async def upsert(self, channel_id: str, team_id: str, project_id: str, configured_by: str) -> ChannelBinding:
        """Create the binding or point an existing one at a new project"""
        db_binding = self._find(channel_id)
        if db_binding is None:
            db_binding = ChannelBindingModel(
                id=str(uuid.uuid4()),
                channel_id=channel_id,
                team_id=team_id,
                project_id=project_id,
                configured_by=configured_by,
            )
            self.db.add(db_binding)
        else:
            db_binding.project_id = project_id
            db_binding.configured_by = configured_by

        self.db.commit()
        self.db.refresh(db_binding)
        return self._to_schema(db_binding)

    async def delete(self, channel_id: str) -> bool:
        db_binding = self._find(channel_id)
        if not db_binding:
            return False

        self.db.delete(db_binding)
        self.db.commit()
        return True

    async def project_exists(self, project_id: str) -> bool:
        return self.db.query(ProjectModel.id).filter(ProjectModel.id == project_id).first() is not None

    def _find(self, channel_id: str) -> Optional[ChannelBindingModel]:
        return self.db.query(ChannelBindingModel).filter(ChannelBindingModel.channel_id == channel_id).first()

    @staticmethod
    def _to_schema(db_binding: ChannelBindingModel) -> ChannelBinding:
        return ChannelBinding(
            channel_id=db_binding.channel_id,
            team_id=db_binding.team_id,
            project_id=db_binding.project_id,
            configured_by=db_binding.configured_by,
            project_name=db_binding.project.name if db_binding.project else None,
            created_at=db_binding.created_at,
            updated_at=db_binding.updated_at,
        )
