"""Render entries as text blocks for the chat model.

Two shapes:
- assemble(): ranked entries for one query, order preserved
- build_knowledge_base(): topic-grouped digest for seeding a system prompt
"""

from .models import Entry

NO_MATCH_TEXT = "No specific information found in the knowledge base for this query."
CONTEXT_HEADER = "**Relevant Information from Knowledge Base:**"
KNOWLEDGE_BASE_TITLE = "**Knowledge Base: Indian University Guidance for Bangladeshi Students**"
BLOCK_SEPARATOR = "---"
DEFAULT_TOPIC = "General"


def assemble(entries: list[Entry]) -> str:
    """One labelled block per entry, in the order given.

    Returns :data:`NO_MATCH_TEXT` for an empty list.
    """
    if not entries:
        return NO_MATCH_TEXT

    parts = [CONTEXT_HEADER, ""]
    for i, entry in enumerate(entries, 1):
        if entry.context:
            parts.append(f"**Context {i}:** {entry.context}")
        parts.append(f"**Q:** {entry.question}")
        parts.append(f"**A:** {entry.answer}")
        if entry.source:
            parts.append(f"**Source:** {entry.source}")
        parts.append("")
        parts.append(BLOCK_SEPARATOR)
        parts.append("")
    return "\n".join(parts)


def build_knowledge_base(entries: list[Entry], max_entries: int = 100) -> str:
    """Group the first ``max_entries`` entries by topic, topics in first-seen order."""
    groups: dict[str, list[Entry]] = {}
    for entry in entries[:max(0, max_entries)]:
        groups.setdefault(entry.context or DEFAULT_TOPIC, []).append(entry)

    lines = [KNOWLEDGE_BASE_TITLE, ""]
    for topic, group in groups.items():
        lines.append(f"**Topic: {topic}**")
        for entry in group:
            lines.append(f"*   **Question:** {entry.question}")
            lines.append(f"*   **Answer:** {entry.answer}")
            note = entry.metadata.grading_conversion if entry.metadata else None
            if note:
                lines.append(f"    *Note: {note}*")
            lines.append("")
        lines.append("")
    return "\n".join(lines)
