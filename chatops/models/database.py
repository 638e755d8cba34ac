from sqlalchemy import Column, String, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()


class ChannelBindingModel(Base):
    """Chat channel -> EZTest project binding. The only table this service writes."""

    __tablename__ = "teams_channel_configs"

    id = Column(String(36), primary_key=True)
    channel_id = Column(String(255), nullable=False, unique=True, index=True)
    team_id = Column(String(255), nullable=False)
    project_id = Column(String(36), ForeignKey("projects.id"), nullable=False, index=True)
    configured_by = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    project = relationship("ProjectModel")

    def __repr__(self):
        return f"<ChannelBinding(channel_id='{self.channel_id}', project_id='{self.project_id}')>"


# Tables below belong to the main EZTest application and are only read here.

class ProjectModel(Base):
    __tablename__ = "projects"

    id = Column(String(36), primary_key=True)
    name = Column(String(255), nullable=False)
    key = Column(String(50), nullable=True)


class PermissionModel(Base):
    __tablename__ = "permissions"

    id = Column(String(36), primary_key=True)
    name = Column(String(100), nullable=False, unique=True)


class RolePermissionModel(Base):
    __tablename__ = "role_permissions"

    role_id = Column(String(36), ForeignKey("roles.id"), primary_key=True)
    permission_id = Column(String(36), ForeignKey("permissions.id"), primary_key=True)

    permission = relationship("PermissionModel")


class RoleModel(Base):
    __tablename__ = "roles"

    id = Column(String(36), primary_key=True)
    name = Column(String(100), nullable=False)
    keyword = Column(String(100), nullable=True)

    permissions = relationship("RolePermissionModel")


class UserModel(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    name = Column(String(255), nullable=True)
    role_id = Column(String(36), ForeignKey("roles.id"), nullable=False)

    role = relationship("RoleModel")


class ProjectMemberModel(Base):
    __tablename__ = "project_members"
    __table_args__ = (UniqueConstraint("project_id", "user_id"),)

    id = Column(String(36), primary_key=True)
    project_id = Column(String(36), ForeignKey("projects.id"), nullable=False)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False)

    user = relationship("UserModel")
