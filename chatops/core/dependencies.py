from fastapi import Depends
from sqlalchemy.orm import Session
from chatops.repositories.interfaces.channel_binding_repository import IChannelBindingRepository
from chatops.repositories.interfaces.user_directory import IUserDirectory
from chatops.repositories.interfaces.domain_service import IDomainService
from chatops.repositories.interfaces.chat_connector import IChatConnector

from chatops.repositories.implementations.sql_channel_binding_repository import SQLChannelBindingRepository
from chatops.repositories.implementations.sql_user_directory import SQLUserDirectory
from chatops.repositories.implementations.http_domain_service import HttpDomainService
from chatops.repositories.implementations.bot_framework_connector import BotFrameworkConnector

from chatops.services.channel_registry import ChannelRegistry
from chatops.services.identity_resolver import IdentityResolver
from chatops.services.dispatcher import CommandDispatcher
from chatops.core.cache import MessageCache
from chatops.core.database import get_database
from chatops.core.security import BotFrameworkTokenVerifier
from chatops.config.settings import settings


class Container:
    """Dependency injection container"""

    def __init__(self):
        self._message_cache = None
        self._domain_service = None
        self._chat_connector = None
        self._token_verifier = None

    def message_cache(self) -> MessageCache:
        """Get message cache instance (singleton, shared by all requests)"""
        if self._message_cache is None:
            self._message_cache = MessageCache(
                ttl_seconds=settings.message_cache_ttl_minutes * 60,
                sweep_interval_seconds=settings.message_cache_sweep_minutes * 60,
            )
        return self._message_cache

    def domain_service(self) -> IDomainService:
        """Get domain API client instance (singleton)"""
        if self._domain_service is None:
            self._domain_service = HttpDomainService()
        return self._domain_service

    def chat_connector(self) -> IChatConnector:
        """Get Bot Connector client (singleton, caches its access token)"""
        if self._chat_connector is None:
            self._chat_connector = BotFrameworkConnector()
        return self._chat_connector

    def token_verifier(self) -> BotFrameworkTokenVerifier:
        """Get inbound token verifier (singleton, caches the signing keys)"""
        if self._token_verifier is None:
            self._token_verifier = BotFrameworkTokenVerifier(
                app_id=settings.microsoft_app_id,
                issuer=settings.bot_token_issuer,
                jwks_url=settings.bot_openid_jwks_url,
            )
        return self._token_verifier

    def channel_binding_repository(self, db: Session) -> IChannelBindingRepository:
        return SQLChannelBindingRepository(db)

    def user_directory(self, db: Session) -> IUserDirectory:
        return SQLUserDirectory(db)

    def channel_registry(self, db: Session) -> ChannelRegistry:
        return ChannelRegistry(self.channel_binding_repository(db))

    def identity_resolver(self, db: Session) -> IdentityResolver:
        return IdentityResolver(self.user_directory(db))

    def dispatcher(self, db: Session) -> CommandDispatcher:
        """Get command dispatcher for one request"""
        return CommandDispatcher(
            cache=self.message_cache(),
            channel_registry=self.channel_registry(db),
            identity_resolver=self.identity_resolver(db),
            domain_service=self.domain_service(),
        )


# Global container instance
container = Container()


# Dependency providers for FastAPI
def get_message_cache() -> MessageCache:
    return container.message_cache()


def get_channel_registry(db: Session = Depends(get_database)) -> ChannelRegistry:
    """FastAPI dependency for the channel binding registry"""
    return container.channel_registry(db)


def get_dispatcher(db: Session = Depends(get_database)) -> CommandDispatcher:
    """FastAPI dependency for the chat command dispatcher"""
    return container.dispatcher(db)


def get_chat_connector() -> IChatConnector:
    return container.chat_connector()


def get_token_verifier() -> BotFrameworkTokenVerifier:
    return container.token_verifier()
