import re
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple


class CommandKind(str, Enum):
    CONFIGURE = "configure"
    CREATE_TEST_CASE = "create_test_case"
    LIST_TEST_CASES = "list_test_cases"
    SHOW_TEST_CASE = "show_test_case"
    CREATE_DEFECT = "create_defect"
    HELP = "help"
    UNRECOGNIZED = "unrecognized"


@dataclass(frozen=True)
class CommandPolicy:
    # Guarded commands go through binding -> identity -> authorization
    guarded: bool = False
    permission: Optional[str] = None
    consumes_context: bool = False


COMMAND_POLICIES: Dict[CommandKind, CommandPolicy] = {
    CommandKind.CONFIGURE: CommandPolicy(),
    CommandKind.CREATE_TEST_CASE: CommandPolicy(guarded=True, permission="testcases:create", consumes_context=True),
    CommandKind.LIST_TEST_CASES: CommandPolicy(guarded=True),
    CommandKind.SHOW_TEST_CASE: CommandPolicy(guarded=True),
    CommandKind.CREATE_DEFECT: CommandPolicy(guarded=True, consumes_context=True),
    CommandKind.HELP: CommandPolicy(),
    CommandKind.UNRECOGNIZED: CommandPolicy(),
}


@dataclass(frozen=True)
class Command:
    kind: CommandKind
    argument: Optional[str] = None

    @property
    def policy(self) -> CommandPolicy:
        return COMMAND_POLICIES[self.kind]


# Checked in order; the first keyword found anywhere after the mention wins.
_ACTION_PATTERNS: Tuple[Tuple[CommandKind, "re.Pattern[str]"], ...] = (
    (CommandKind.CONFIGURE, re.compile(r"\bconfigure\b", re.IGNORECASE)),
    (CommandKind.CREATE_TEST_CASE, re.compile(r"\b(?:create|add) +test *cases?\b", re.IGNORECASE)),
    (CommandKind.LIST_TEST_CASES, re.compile(r"\blist +test *cases?\b", re.IGNORECASE)),
    (CommandKind.SHOW_TEST_CASE, re.compile(r"\bshow +test *cases?\b", re.IGNORECASE)),
    (CommandKind.CREATE_DEFECT, re.compile(r"\badd +defects?\b", re.IGNORECASE)),
    (CommandKind.HELP, re.compile(r"\bhelp\b", re.IGNORECASE)),
)

_SHORT_ID_IN_TEXT_RE = re.compile(r"\b([A-Za-z]+-\d+)\b")


class CommandClassifier:
    """Turns raw chat text into a ``Command``, or None when the text is not addressed to the bot"""

    def __init__(self, bot_mention: str):
        name = bot_mention.strip().lstrip("@")
        self.bot_mention = f"@{name}"
        self._mention_re = re.compile(r"@" + re.escape(name) + r"\b", re.IGNORECASE)

    def is_command(self, text: str) -> bool:
        return bool(text) and self._mention_re.search(text) is not None

    def classify(self, text: Optional[str]) -> Optional[Command]:
        if not text or not self.is_command(text):
            return None

        remainder = " ".join(self._mention_re.sub(" ", text).split())
        for kind, pattern in _ACTION_PATTERNS:
            match = pattern.search(remainder)
            if not match:
                continue
            if kind is CommandKind.SHOW_TEST_CASE:
                short_id = _SHORT_ID_IN_TEXT_RE.search(remainder[match.end():])
                return Command(kind, short_id.group(1).upper() if short_id else None)
            return Command(kind)

        return Command(CommandKind.UNRECOGNIZED, remainder or None)


_missing_policies = set(CommandKind) - set(COMMAND_POLICIES)
if _missing_policies:
    raise RuntimeError(f"Command kinds without a policy: {sorted(k.value for k in _missing_policies)}")
