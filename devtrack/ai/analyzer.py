"""Daily work analysis on top of the chat transport."""

import json
import logging
import re
from dataclasses import dataclass, field

from devtrack.ai.client import ChatMessage, ChatTransport
from devtrack.database.models import (
    DiffResult,
    InboxItem,
    InboxItemType,
    LogCategory,
    Project,
    SuggestedAction,
)

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a development progress assistant. You read git change statistics "
    "and describe a day's work briefly and concretely."
)

ANALYSIS_PROMPT = """Analyze today's progress on this project.

Project: {name}
Changed files:
{files}

{additions} lines added, {deletions} lines deleted in total.

Provide:
1. A one-sentence summary of the work
2. A category, one of: {categories}
3. Two or three key insights
4. Suggested follow-up tasks, if any

Reply with JSON only:
{{"summary": "...", "category": "...", "insights": ["..."], "suggested_todos": ["..."]}}"""

_FENCE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)


@dataclass
class AnalysisResult:
    summary: str
    category: LogCategory = LogCategory.OTHER
    raw_category: str = "other"
    insights: list[str] = field(default_factory=list)
    suggested_todos: list[str] = field(default_factory=list)


class DailyWorkAnalyzer:
    """Classifies and summarizes a project's diff through the AI collaborator."""

    def __init__(self, transport: ChatTransport) -> None:
        self.transport = transport

    def analyze_daily_work(self, project: Project, diff: DiffResult) -> AnalysisResult:
        """Raises AiCollaboratorError if the transport fails; never on a bad reply."""
        files = "\n".join(f"{f.path} (+{f.additions}/-{f.deletions})" for f in diff.files)
        prompt = ANALYSIS_PROMPT.format(
            name=project.name,
            files=files,
            additions=diff.total_additions,
            deletions=diff.total_deletions,
            categories="/".join(c.value for c in LogCategory),
        )
        reply = self.transport.chat(SYSTEM_PROMPT, [ChatMessage(role="user", content=prompt)])
        return parse_analysis(reply)

    def create_daily_summary_inbox(self, project: Project, analysis: AnalysisResult) -> InboxItem:
        item = InboxItem.new(
            InboxItemType.DAILY_SUMMARY,
            f"[{project.name}] Today's progress: {analysis.summary}",
            project_id=project.id,
        )
        context = f"Category: {analysis.category.value}"
        if analysis.insights:
            context += "\nInsights:\n" + "\n".join(analysis.insights)
        item.context = context
        item.suggested_actions = [
            SuggestedAction(id=f"todo_{i}", label=todo, icon="check-circle")
            for i, todo in enumerate(analysis.suggested_todos)
        ]
        return item


def parse_analysis(reply: str) -> AnalysisResult:
    """Parse the model's JSON reply; anything else becomes the summary with category other."""
    if not isinstance(reply, str):
        reply = "" if reply is None else str(reply)
    text = reply.strip()
    match = _FENCE.match(text)
    if match:
        text = match.group(1)

    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        data = None

    if not isinstance(data, dict) or not isinstance(data.get("summary"), str):
        logger.debug("AI reply was not structured JSON, using it as the summary")
        return AnalysisResult(summary=reply.strip())

    raw_category = data.get("category")
    raw_category = raw_category.strip().lower() if isinstance(raw_category, str) else "other"
    return AnalysisResult(
        summary=data["summary"].strip(),
        category=LogCategory.from_storage(raw_category),
        raw_category=raw_category,
        insights=_string_list(data.get("insights")),
        suggested_todos=_string_list(data.get("suggested_todos")),
    )


def _string_list(value) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(v) for v in value if isinstance(v, (str, int, float)) and str(v).strip()]
