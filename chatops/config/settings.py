from pydantic_settings import BaseSettings
from typing import Literal, Optional


class Settings(BaseSettings):
    # API Configuration
    debug: bool = False
    environment: str = "development"
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_prefix: str = "/api/v1"

    # Chat bot
    # Mention text that turns a channel message into a command (case-insensitive)
    bot_mention: str = "@EZTest"
    # bot_framework: Azure Bot registration, JWT-authenticated, replies sent through the Bot Connector.
    # outgoing_webhook: Teams outgoing webhook, HMAC-authenticated, reply returned in the response.
    # The chat endpoint rejects every request until the selected transport has its credentials.
    chat_transport: Literal["bot_framework", "outgoing_webhook"] = "bot_framework"
    microsoft_app_id: Optional[str] = None
    microsoft_app_password: Optional[str] = None
    bot_openid_jwks_url: str = "https://login.botframework.com/v1/.well-known/keys"
    bot_token_issuer: str = "https://api.botframework.com"
    bot_token_url: str = "https://login.microsoftonline.com/botframework.com/oauth2/v2.0/token"
    bot_token_scope: str = "https://api.botframework.com/.default"
    # Base64 shared secret of the Teams outgoing webhook
    teams_webhook_secret: Optional[str] = None

    # Message cache
    message_cache_ttl_minutes: float = 10.0
    message_cache_sweep_minutes: float = 5.0

    # EZTest domain API (internal bot endpoints)
    domain_api_base_url: str = "http://localhost:3000"
    domain_api_token: Optional[str] = None
    domain_api_timeout_seconds: float = 15.0
    # Base URL used for deep links in chat replies
    app_base_url: str = "http://localhost:3000"
    # Short IDs (TC-101) are resolved by scanning one page of this size
    short_id_lookup_limit: int = 100
    list_page_size: int = 10
    # When true, drafts must carry steps and results, not just a title
    require_structured_drafts: bool = False

    # Database Configuration
    database_url: str = "sqlite:///./data/eztest.db"

    # Security
    admin_api_key: Optional[str] = None

    # Logging
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = False


# Global settings instance
settings = Settings()
