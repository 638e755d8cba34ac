"""
EZTest Chat-Ops API

FastAPI service that turns chat channel messages into EZTest test cases and defects.

How it works:
- Users post a plain message (the "context") in a Teams channel
- They then mention the bot with a command, e.g. "@EZTest create testcase"
- The bot parses the last cached message, creates the entity through the
  EZTest API and replies with a deep link

Usage:
1. Copy .env.example to .env and set DOMAIN_API_BASE_URL, DATABASE_URL and the chat transport credentials
2. Install: pip install -e ".[test]"
3. Run the application: python main.py
4. Access API docs at: http://localhost:8000/api/v1/docs

Chat transports (CHAT_TRANSPORT):
- bot_framework (default, recommended): register an Azure Bot and set
  MICROSOFT_APP_ID / MICROSOFT_APP_PASSWORD. Inbound requests must carry a
  Bot Connector JWT; replies are posted to the Bot Connector REST API
  ({serviceUrl}/v3/conversations/{id}/activities). Every channel message
  reaches the bot, so "post context, then create" works.
- outgoing_webhook: set TEAMS_WEBHOOK_SECRET. Requests are HMAC-signed and
  the reply is returned in the response. Teams only calls outgoing webhooks
  for messages that @mention the bot, so context messages never arrive:
  only configure, help, list and show are usable in this mode.
The chat endpoint answers 503 until the selected transport has credentials.

Chat commands:
- @EZTest configure            - Show the channel ID to bind in the admin panel
- @EZTest create testcase      - Create a test case from your last message
- @EZTest list testcases       - List test cases of the channel's project
- @EZTest show testcase TC-101 - Show one test case
- @EZTest add defect           - Create a defect from your last message
- @EZTest help                 - List commands

API Endpoints:
- POST /api/v1/chat/messages - Bot Framework activity (or Teams outgoing webhook)
- GET /api/v1/channels - List channel bindings (X-Admin-Key)
- PUT /api/v1/channels/{channel_id} - Bind a channel to a project (X-Admin-Key)
- DELETE /api/v1/channels/{channel_id} - Remove a binding (X-Admin-Key)
- GET /api/v1/health - Health check

Architecture Components:

1. Controllers (chatops/api/routes/):
   - Chat webhook, admin channel bindings, health

2. Services (chatops/services/):
   - Command classification and dispatch
   - Message parsing into drafts
   - Channel registry and identity resolution

3. Repositories (chatops/repositories/):
   - SQL channel bindings and user directory (shared EZTest database)
   - HTTP client for the EZTest test case / defect API
   - Bot Connector client that posts replies

4. Models (chatops/models/):
   - Pydantic schemas and drafts
   - SQLAlchemy models

5. Core (chatops/core/):
   - Message cache, database, dependency injection, errors, chat transport security

6. Configuration (chatops/config/):
   - Environment-based settings
"""

__version__ = "1.0.0"
__description__ = "Chat command processor for EZTest test cases and defects"
