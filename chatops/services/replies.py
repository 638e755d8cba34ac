"""Chat reply texts. Plain text with Teams markdown (bold, italics, lists)."""

from typing import List, Optional

from chatops.models.domain import DefectSummary, TestCaseDetail, TestCasePage, TestCaseSummary


def unconfigured_channel(mention: str) -> str:
    return (
        "⚠️ This channel is not configured with an EZTest project. "
        f"Use `{mention} configure` to set it up."
    )


def identity_unresolved() -> str:
    return (
        "⚠️ Could not map your Teams account to EZTest. "
        "Please ensure your EZTest email matches your Teams email."
    )


def unauthorized(permission: Optional[str]) -> str:
    if permission == "testcases:create":
        return "❌ You don't have permission to create test cases in this project. Please contact your project admin."
    return "❌ You don't have access to this project. Please contact your project admin."


def missing_context_test_case(mention: str) -> str:
    return (
        "❌ No recent message found. Please enter your test case details first, "
        f"then run `{mention} create testcase` again.\n\n"
        "**Example:**\n"
        "1. Post: \"Verify user login with valid credentials\"\n"
        f"2. Then: `{mention} create testcase`"
    )


def missing_context_defect(mention: str) -> str:
    return (
        "❌ No recent message found. Please post your defect details first, "
        f"then run `{mention} add defect` again."
    )


def parse_incomplete_test_case(errors: List[str]) -> str:
    return (
        "❌ Could not create the test case from your last message:\n"
        + "".join(f"• {e}\n" for e in errors)
        + "\n**Format:**\n"
        "TC: Test case title\n"
        "Steps:\n1. First step\n"
        "Expected Result:\n- What should happen\n"
        "Priority: HIGH | MEDIUM | LOW"
    )


def parse_incomplete_defect(errors: List[str]) -> str:
    return (
        "❌ Could not create the defect from your last message:\n"
        + "".join(f"• {e}\n" for e in errors)
        + "\n**Format:**\n"
        "BUG: Defect title\n"
        "Description: Optional description\n"
        "Severity: CRITICAL | HIGH | MEDIUM | LOW\n"
        "Priority: HIGH | MEDIUM | LOW\n"
        "Linked TC: TC-123 (optional)"
    )


def domain_call_failed(action: str) -> str:
    return f"❌ Failed to {action}. Please try again in a moment."


def internal_error() -> str:
    return "⚠️ An error occurred while processing your command. Please try again."


def unrecognized(mention: str) -> str:
    return f"❓ Command not recognized. Type `{mention} help` for available commands."


def configure(channel_id: str, mention: str) -> str:
    return (
        "🔧 **Configure EZTest**\n\n"
        "To configure this channel, please use the EZTest admin panel:\n"
        "1. Go to Admin → Teams Channels\n"
        "2. Add a new channel configuration\n"
        "3. Link this channel ID to your project\n\n"
        f"**Channel ID:** `{channel_id}`\n\n"
        f"Once configured, you can use all `{mention}` commands in this channel."
    )


def help_text(mention: str) -> str:
    return (
        "📚 **EZTest Teams Bot - Available Commands**\n\n"
        "**Setup:**\n"
        f"`{mention} configure` - Link this channel to an EZTest project\n\n"
        "**Test Cases:**\n"
        f"`{mention} create testcase` - Create test case from your last message\n"
        f"`{mention} list testcases` - List test cases in this project\n"
        f"`{mention} show testcase TC-101` - Show test case details\n\n"
        "**Defects:**\n"
        f"`{mention} add defect` - Create defect from your last message\n\n"
        "**How to Use:**\n"
        "1. Post your test case details (e.g., \"Verify user login with valid credentials\")\n"
        f"2. Then type: `{mention} create testcase`\n"
        "3. The bot will use your last message to create the test case!\n\n"
        "**Note:** Each channel can be linked to a different EZTest project."
    )


def show_usage(mention: str) -> str:
    return f"❌ Test case ID not found. Format: `{mention} show testcase TC-101`"


def test_case_not_found(short_id: str) -> str:
    return f"❌ Test case {short_id} not found in this project."


def test_case_created(tc: TestCaseSummary, link: str) -> str:
    return (
        "✅ **Test Case Created!**\n\n"
        f"**{tc.display_id}** - {tc.title}\n\n"
        + (f"*{tc.description}*\n\n" if tc.description else "")
        + f"View in EZTest: {link}"
    )


def test_case_list(page: TestCasePage, shown: int, mention: str) -> str:
    if not page.items:
        return "📋 **No test cases found** in this project."

    total = page.total if page.total is not None else len(page.items)
    message = f"📋 **Test Cases ({total})**\n\n"
    for tc in page.items[:shown]:
        message += f"• **{tc.display_id}** - {tc.title}\n"
    if total > shown:
        message += f"\n... and {total - shown} more."
    message += f"\n\nType `{mention} show testcase TC-XXX` for details."
    return message


def test_case_detail(tc: TestCaseDetail, link: str) -> str:
    message = f"🧪 **{tc.display_id} - {tc.title}**\n\n"
    if tc.description:
        message += f"*{tc.description}*\n\n"

    steps = [s.text for s in tc.test_steps if s.text]
    if steps:
        message += "**Steps:**\n"
        for idx, step in enumerate(steps, start=1):
            message += f"{idx}. {step}\n"
        message += "\n"

    if tc.expected_result:
        message += f"**Expected Result:**\n{tc.expected_result}\n\n"

    message += f"**Priority:** {tc.priority or 'N/A'} | **Status:** {tc.status or 'N/A'}"
    if tc.type:
        message += f" | **Type:** {tc.type}"
    message += f"\n\nView in EZTest: {link}"
    return message


def defect_created(
    defect: DefectSummary,
    link: str,
    linked_to: Optional[str] = None,
    link_warning: Optional[str] = None,
) -> str:
    message = (
        "✅ **Defect Created!**\n\n"
        f"**{defect.display_id}** - {defect.title}\n\n"
        + (f"*{defect.description}*\n\n" if defect.description else "")
        + f"**Severity:** {defect.severity or 'N/A'} | **Priority:** {defect.priority or 'N/A'}\n"
    )
    if linked_to:
        message += f"**Linked to:** {linked_to}\n"
    if link_warning:
        message += f"⚠️ {link_warning}\n"
    message += f"\nView in EZTest: {link}"
    return message
