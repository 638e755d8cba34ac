from dataclasses import dataclass
from typing import Dict, Optional, Tuple
import structlog

from chatops.config.settings import Settings, settings as default_settings
from chatops.core.cache import CachedMessage, MessageCache
from chatops.core.exceptions import (
    ChatOpsError,
    DomainServiceError,
    IdentityUnresolvedError,
    MissingContextError,
    Outcome,
    ParseIncompleteError,
    TestCaseNotFoundError,
    UnauthorizedError,
    UnconfiguredChannelError,
)
from chatops.models.domain import TestCaseSummary
from chatops.models.schemas import ChatActivity, InternalUser
from chatops.repositories.interfaces.domain_service import IDomainService
from chatops.services import replies
from chatops.services.channel_registry import ChannelRegistry
from chatops.services.commands import Command, CommandClassifier, CommandKind
from chatops.services.identity_resolver import IdentityResolver
from chatops.services.parser import (
    parse_defect,
    parse_test_case,
    text_after_title,
    validate_defect,
    validate_test_case,
)

logger = structlog.get_logger()


@dataclass
class DispatchResult:
    outcome: Outcome
    reply: Optional[str] = None
    command: Optional[Command] = None


@dataclass
class TurnContext:
    activity: ChatActivity
    command: Command
    channel_id: str
    sender_id: str
    project_id: Optional[str] = None
    user: Optional[InternalUser] = None
    cached: Optional[CachedMessage] = None


_HANDLERS: Dict[CommandKind, str] = {
    CommandKind.CONFIGURE: "_handle_configure",
    CommandKind.CREATE_TEST_CASE: "_handle_create_test_case",
    CommandKind.LIST_TEST_CASES: "_handle_list_test_cases",
    CommandKind.SHOW_TEST_CASE: "_handle_show_test_case",
    CommandKind.CREATE_DEFECT: "_handle_create_defect",
    CommandKind.HELP: "_handle_help",
    CommandKind.UNRECOGNIZED: "_handle_unrecognized",
}

_missing_handlers = set(CommandKind) - set(_HANDLERS)
if _missing_handlers:
    raise RuntimeError(f"Command kinds without a handler: {sorted(k.value for k in _missing_handlers)}")

# Used in "Failed to ..." replies
_ACTIONS: Dict[CommandKind, str] = {
    CommandKind.CREATE_TEST_CASE: "create test case",
    CommandKind.LIST_TEST_CASES: "fetch test cases",
    CommandKind.SHOW_TEST_CASE: "fetch test case",
    CommandKind.CREATE_DEFECT: "create defect",
}


class CommandDispatcher:
    """Handles one inbound chat turn.

    Non-commands are cached as context for a later create command. Guarded
    commands run binding -> identity -> authorization -> cached context
    before their handler; the first failing step ends the turn with its own
    reply. The cache entry is evicted only after a successful create so a
    failed attempt can be retried.
    """

    def __init__(
        self,
        cache: MessageCache,
        channel_registry: ChannelRegistry,
        identity_resolver: IdentityResolver,
        domain_service: IDomainService,
        settings: Optional[Settings] = None,
    ):
        self.cache = cache
        self.channel_registry = channel_registry
        self.identity_resolver = identity_resolver
        self.domain_service = domain_service
        self.settings = settings or default_settings
        self.classifier = CommandClassifier(self.settings.bot_mention)
        self.mention = self.classifier.bot_mention

    async def handle(self, activity: ChatActivity) -> DispatchResult:
        if not activity.is_message:
            return DispatchResult(Outcome.IGNORED)

        text = activity.plain_text
        channel_id = activity.channel_id
        sender_id = activity.sender_id
        if not channel_id or not sender_id:
            # cache key needs both ids
            logger.warning("Ignoring message without sender or channel id", activity_id=activity.id)
            return DispatchResult(Outcome.IGNORED)

        command = self.classifier.classify(text)
        if command is None:
            if text.strip():
                self.cache.store(channel_id, sender_id, text, activity.id)
            return DispatchResult(Outcome.NOT_A_COMMAND)

        log = logger.bind(channel_id=channel_id, sender_id=sender_id, command=command.kind.value)
        log.info("Chat command received")
        ctx = TurnContext(activity=activity, command=command, channel_id=channel_id, sender_id=sender_id)

        try:
            if command.policy.guarded:
                await self._authorize(ctx)
            if command.policy.consumes_context:
                ctx.cached = self._fetch_context(ctx)

            handler = getattr(self, _HANDLERS[command.kind])
            outcome, reply = await handler(ctx)
        except ChatOpsError as e:
            log.warning(
                "Chat command failed",
                outcome=e.outcome.value,
                project_id=ctx.project_id,
                user_id=ctx.user.id if ctx.user else None,
                error=str(e),
            )
            return DispatchResult(e.outcome, self._error_reply(e, command), command)
        except Exception as e:
            log.error("Unhandled error while processing chat command", error=str(e), exc_info=True)
            return DispatchResult(Outcome.INTERNAL_ERROR, replies.internal_error(), command)

        log.info("Chat command completed", outcome=outcome.value, project_id=ctx.project_id)
        return DispatchResult(outcome, reply, command)

    # Pipeline steps

    async def _authorize(self, ctx: TurnContext) -> None:
        project_id = await self.channel_registry.resolve(ctx.channel_id)
        if not project_id:
            raise UnconfiguredChannelError(ctx.channel_id)
        ctx.project_id = project_id

        user = await self.identity_resolver.resolve_identity(ctx.activity.identity())
        if user is None:
            raise IdentityUnresolvedError(ctx.sender_id)
        ctx.user = user

        permission = ctx.command.policy.permission
        if not await self.identity_resolver.has_access(user.id, project_id, permission):
            role = await self.identity_resolver.get_project_role(user.id, project_id)
            logger.info("Access denied", user_id=user.id, project_id=project_id, role=role, permission=permission)
            raise UnauthorizedError(permission)

    def _fetch_context(self, ctx: TurnContext) -> CachedMessage:
        cached = self.cache.fetch(ctx.channel_id, ctx.sender_id)
        if cached is None:
            raise MissingContextError(ctx.channel_id)
        return cached

    def _error_reply(self, error: ChatOpsError, command: Command) -> str:
        is_defect = command.kind is CommandKind.CREATE_DEFECT
        if isinstance(error, UnconfiguredChannelError):
            return replies.unconfigured_channel(self.mention)
        if isinstance(error, IdentityUnresolvedError):
            return replies.identity_unresolved()
        if isinstance(error, UnauthorizedError):
            return replies.unauthorized(error.permission)
        if isinstance(error, MissingContextError):
            if is_defect:
                return replies.missing_context_defect(self.mention)
            return replies.missing_context_test_case(self.mention)
        if isinstance(error, ParseIncompleteError):
            if command.kind is CommandKind.SHOW_TEST_CASE:
                return replies.show_usage(self.mention)
            if is_defect:
                return replies.parse_incomplete_defect(error.errors)
            return replies.parse_incomplete_test_case(error.errors)
        if isinstance(error, TestCaseNotFoundError):
            return replies.test_case_not_found(error.short_id)
        if isinstance(error, DomainServiceError):
            return replies.domain_call_failed(_ACTIONS.get(command.kind, "complete the request"))
        return replies.internal_error()

    # Command handlers

    async def _handle_configure(self, ctx: TurnContext) -> Tuple[Outcome, str]:
        return Outcome.OK, replies.configure(ctx.channel_id, self.mention)

    async def _handle_help(self, ctx: TurnContext) -> Tuple[Outcome, str]:
        return Outcome.OK, replies.help_text(self.mention)

    async def _handle_unrecognized(self, ctx: TurnContext) -> Tuple[Outcome, str]:
        return Outcome.UNRECOGNIZED, replies.unrecognized(self.mention)

    async def _handle_create_test_case(self, ctx: TurnContext) -> Tuple[Outcome, str]:
        draft = parse_test_case(ctx.cached.text)
        validation = validate_test_case(draft, strict=self.settings.require_structured_drafts)
        if not validation.valid:
            raise ParseIncompleteError(validation.errors)

        description = draft.description or text_after_title(ctx.cached.text, draft.title)
        test_case = await self.domain_service.create_test_case(
            project_id=ctx.project_id,
            user_id=ctx.user.id,
            title=draft.title,
            description=description,
            priority=draft.priority or "MEDIUM",
            status=draft.status or "ACTIVE",
        )

        self.cache.evict(ctx.channel_id, ctx.sender_id)
        link = self._link(ctx.project_id, "testcases", test_case.id)
        return Outcome.OK, replies.test_case_created(test_case, link)

    async def _handle_list_test_cases(self, ctx: TurnContext) -> Tuple[Outcome, str]:
        page_size = self.settings.list_page_size
        page = await self.domain_service.list_test_cases(ctx.project_id, ctx.user.id, page=1, limit=page_size)
        return Outcome.OK, replies.test_case_list(page, page_size, self.mention)

    async def _handle_show_test_case(self, ctx: TurnContext) -> Tuple[Outcome, str]:
        short_id = ctx.command.argument
        if not short_id:
            raise ParseIncompleteError(["Test case ID is required"])

        summary = await self._find_test_case(ctx.project_id, ctx.user.id, short_id)
        if summary is None:
            raise TestCaseNotFoundError(short_id)

        detail = await self.domain_service.get_test_case(summary.id, ctx.user.id)
        if detail is None:
            raise TestCaseNotFoundError(short_id)

        link = self._link(ctx.project_id, "testcases", detail.id)
        return Outcome.OK, replies.test_case_detail(detail, link)

    async def _handle_create_defect(self, ctx: TurnContext) -> Tuple[Outcome, str]:
        draft = parse_defect(ctx.cached.text)
        validation = validate_defect(draft, strict=self.settings.require_structured_drafts)
        if not validation.valid:
            raise ParseIncompleteError(validation.errors)

        reference = draft.linked_test_case
        linked_test_case: Optional[TestCaseSummary] = None
        if reference:
            try:
                linked_test_case = await self._find_test_case(ctx.project_id, ctx.user.id, reference)
            except DomainServiceError as e:
                logger.warning("Linked test case lookup failed", reference=reference, error=str(e))
            if linked_test_case is None:
                logger.info("Linked test case not found; creating defect unlinked", reference=reference)

        defect = await self.domain_service.create_defect(
            project_id=ctx.project_id,
            user_id=ctx.user.id,
            title=draft.title,
            description=draft.description,
            severity=draft.severity,
            priority=draft.priority,
            status=draft.status or "NEW",
        )
        # The defect exists from here on; linking problems are reported, not raised.
        self.cache.evict(ctx.channel_id, ctx.sender_id)

        outcome = Outcome.OK
        linked_to = None
        link_warning = None
        if reference and linked_test_case is None:
            outcome = Outcome.REFERENCE_NOT_FOUND
            link_warning = f"Could not link {reference}: test case not found in this project."
        elif linked_test_case is not None:
            try:
                await self.domain_service.link_defect_to_test_case(defect.id, linked_test_case.id, ctx.user.id)
                linked_to = reference
            except DomainServiceError as e:
                logger.error("Failed to link defect to test case", defect_id=defect.id, reference=reference, error=str(e))
                link_warning = f"Defect was created but linking to {reference} failed."

        link = self._link(ctx.project_id, "defects", defect.id)
        return outcome, replies.defect_created(defect, link, linked_to=linked_to, link_warning=link_warning)

    # Helpers

    async def _find_test_case(self, project_id: str, user_id: str, short_id: str) -> Optional[TestCaseSummary]:
        """Look a short ID up in the first page of the project's test cases."""
        limit = self.settings.short_id_lookup_limit
        page = await self.domain_service.list_test_cases(project_id, user_id, page=1, limit=limit)
        wanted = short_id.upper()
        for tc in page.items:
            if tc.short_id and tc.short_id.upper() == wanted:
                return tc

        truncated = len(page.items) >= limit or (page.total is not None and page.total > len(page.items))
        if truncated:
            logger.warning("Short ID lookup scanned a partial list", short_id=wanted, project_id=project_id, limit=limit)
        return None

    def _link(self, project_id: str, collection: str, entity_id: str) -> str:
        return f"{self.settings.app_base_url.rstrip('/')}/projects/{project_id}/{collection}/{entity_id}"
