"""System prompt builder."""

from __future__ import annotations

from chefmate.tools.base import Tool


def build_system_prompt(
    preferences: str | None = None,
    inventory_summary: str | None = None,
    tools: list[Tool] | None = None,
) -> str:
    """
    Build the system prompt for one conversational turn.

    Combines the assistant persona, tool-use rules, and whatever standing
    context the loader found for the user.
    """
    sections: list[str] = []

    sections.append(
        "You are ChefMate, a friendly kitchen assistant. You help people decide "
        "what to cook, keep track of what is in their fridge, freezer and pantry, "
        "plan their meals for the week, build shopping lists and follow their "
        "nutrition goals. Be concise and practical, and always consider food safety."
    )

    sections.append(TOOL_DISCIPLINE_SECTION)

    if tools:
        tool_lines = [f"- **{t.name}**: {t.description}" for t in tools]
        sections.append("## Available Tools\n\n" + "\n".join(tool_lines))

    if preferences:
        sections.append(f"## User Preferences\n\n{preferences}")

    if inventory_summary:
        sections.append(
            "## Current Inventory\n\n"
            f"{inventory_summary}\n\n"
            "This is a short summary. Call `get_inventory` for the full list."
        )

    return "\n\n".join(sections)


TOOL_DISCIPLINE_SECTION = """## Tool Discipline

- Use your tools to look things up instead of guessing about the user's kitchen.
- Only pass arguments that match the tool's parameter schema.
- Prefer recipes that use items expiring soon.
- Ask before creating or changing plans and lists when the request is ambiguous.
- If a tool returns an error, explain it plainly and suggest what to try next."""
