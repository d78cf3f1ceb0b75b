"""Prompt rendering for plan generation attempts."""

from __future__ import annotations

import json

from nightplan.models.context import PlanContext, PlanKind

PLAN_SHAPE_HINT = (
    '{\n'
    '  "planType": "initial | event_based | transcript_refinement",\n'
    '  "title": "string",\n'
    '  "summary": "string",\n'
    '  "schedule": {\n'
    '    "bedtime": "HH:MM",\n'
    '    "wakeTime": "HH:MM",\n'
    '    "meals": [{"time": "HH:MM", "type": "string", "description": "string"}],\n'
    '    "activities": [{"time": "HH:MM", "activity": "string", "duration": minutes, "description": "string"}],\n'
    '    "naps": [{"time": "HH:MM", "duration": minutes, "description": "string (optional)"}]\n'
    '  },\n'
    '  "objectives": ["string"],\n'
    '  "recommendations": ["string"],\n'
    '  "window": {"from": "ISO-8601", "to": "ISO-8601"},\n'
    '  "metrics": {"eventCount": number, "distinctTypes": number, "byType": {"type": number}, "ageInMonths": number|null},\n'
    '  "metadata": {"ragSources": ["string"], "notes": "string (optional)"}\n'
    '}'
)

INSUFFICIENT_DATA_REPLY = '{"error":"insufficient_data","reason":"<cause>"}'

PROMPT_TEMPLATE = (
    "You are an expert in infant and child sleep.\n"
    'Task: generate a daily routine plan of type "{kind}" from the context below.\n'
    "\n"
    "RULES:\n"
    "- Do not invent data. If the information is insufficient, reply with exactly "
    "{insufficient} and nothing else.\n"
    "- Reply with one valid JSON object that follows this shape exactly:\n"
    "{shape}\n"
    "- Every time must be 24-hour HH:MM. Durations are whole minutes.\n"
    "- Do not write comments, Markdown or any text outside the JSON body.\n"
    "- Keep objectives and recommendations practical, actionable and consistent with the context.\n"
    "{survey_only}"
    "\n"
    "Context:\n"
    "{context_json}\n"
)

SURVEY_ONLY_NOTE = (
    "- Recent event history is too thin for analysis: base the plan on the intake survey "
    "and age-appropriate guidance.\n"
)

RETRY_SUFFIX = (
    "\n\nYour previous reply was rejected. Correct the JSON: it must match the shape above "
    "exactly and be strictly valid JSON, with no text outside the JSON body."
)


class PromptBuilder:
    """Render one deterministic instruction string per attempt."""

    def serialize_context(self, context: PlanContext) -> str:
        return json.dumps(
            context.to_prompt_payload(),
            sort_keys=True,
            ensure_ascii=False,
            separators=(",", ":"),
        )

    def build(
        self,
        kind: PlanKind,
        context: PlanContext,
        *,
        retry: bool = False,
        survey_only: bool = False,
    ) -> str:
        prompt = PROMPT_TEMPLATE.format(
            kind=kind,
            insufficient=INSUFFICIENT_DATA_REPLY,
            shape=PLAN_SHAPE_HINT,
            survey_only=SURVEY_ONLY_NOTE if survey_only else "",
            context_json=self.serialize_context(context),
        )
        if retry:
            prompt += RETRY_SUFFIX
        return prompt


__all__ = [
    "INSUFFICIENT_DATA_REPLY",
    "PLAN_SHAPE_HINT",
    "PromptBuilder",
    "RETRY_SUFFIX",
    "SURVEY_ONLY_NOTE",
]
