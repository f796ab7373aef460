"""Grounded prompt templates for live transcript analysis and speaker
identification.

build_prompt is pure: the same (type, topic, transcript, mode) always renders
the same text. The transcript is embedded verbatim and never truncated;
length limits belong to request validation.
"""

import json
from enum import Enum
from typing import Any, List, Sequence, Union

from .schemas import TRANSCRIPT_PLACEHOLDER, AnalysisType, TranscriptEntry


class OutputMode(str, Enum):
    TEXT = "text"
    JSON = "json_object"


GROUNDING_RULES = """CRITICAL RULES:
1. You MUST ONLY reference content that appears in the TRANSCRIPT below.
2. If the transcript is empty or minimal, acknowledge this honestly.
3. NEVER invent participants, quotes, or details not in the transcript.
4. Be specific when referencing the transcript - quote or paraphrase actual content."""

_JSON_RULE = "5. Output MUST be a single valid JSON object."

_SYSTEM_INSTRUCTIONS = {
    OutputMode.TEXT: (
        "You are an expert facilitator providing real-time analysis. "
        "Always respond with factual, actionable insights based strictly on "
        "provided content. Never fabricate details."
    ),
    OutputMode.JSON: (
        "You are a strict AI co-facilitator. Output only valid JSON. Never "
        "invent content not in the transcript. If there is no transcript, "
        "acknowledge this honestly."
    ),
}

_TEXT_BLOCKS = {
    AnalysisType.INSIGHTS: """YOUR TASK:
Identify the key insights emerging from the transcript. Provide exactly 4 numbered points:
1. Key theme: [theme drawn from the transcript]
2. Pattern observed: [pattern across what was said]
3. Important quote: [exact quote from the transcript]
4. Recommended next step: [recommendation grounded in the discussion]
If the transcript is minimal, say that insights will be generated once more is shared.
Respond with only plain text.""",
    AnalysisType.SYNTHESIS: """YOUR TASK:
Synthesize the discussion into 3-4 numbered strategic takeaways, each tied to
something actually said. If the transcript is minimal, state that no synthesis
is possible yet.
Respond with only plain text.""",
    AnalysisType.FOLLOWUP: """YOUR TASK:
Generate up to 4 probing follow-up questions based directly on statements in
the transcript. Put each question on its own line starting with "- ".
If the transcript is minimal, suggest general opening questions related to the
session topic and say so.
Respond with only plain text.""",
    AnalysisType.CROSS_REFERENCE: """YOUR TASK:
Identify 4 numbered connections between points raised in the transcript:
shared themes, tensions, and strategic implications. If the transcript is
minimal, state that no cross-reference is possible yet.
Respond with only plain text.""",
    AnalysisType.FACILITATION: """YOUR TASK:
Advise the human facilitator on how to steer the next few minutes of the
discussion. Give one sentence on the current state of the conversation, then
up to 5 concrete facilitation moves, each on its own line starting with "- ".
If the transcript is minimal, focus on how to open the discussion.
Respond with only plain text.""",
}

_JSON_BLOCKS = {
    AnalysisType.INSIGHTS: """Based ONLY on the transcript above, provide insights in this exact JSON format:
{
  "insights": "Key patterns or themes from actual content (or 'No content to analyze yet' if empty)",
  "confidence": 0.0 to 1.0 based on amount of content,
  "type": "insights",
  "evidence": ["Quote or reference 1 from transcript", "Quote or reference 2"] or [],
  "frameworkAlignment": "Which stage of adoption does the discussion align with?",
  "transformationGaps": "What gaps exist between the current state and the goals discussed?"
}""",
    AnalysisType.SYNTHESIS: """Synthesize ONLY what's in the transcript in this exact JSON format:
{
  "synthesis": "Summary of actual discussion points (or 'No discussion to synthesize yet' if empty)",
  "confidence": 0.0 to 1.0,
  "type": "synthesis",
  "keyPoints": ["Point 1 from transcript", "Point 2"] or [],
  "speakerCount": number of distinct speakers identified or 0,
  "transformationReadiness": "Based on the discussion, how ready is the organization to act?",
  "nextSteps": ["Concrete action 1", "Concrete action 2"] or []
}""",
    AnalysisType.FOLLOWUP: """Generate follow-up questions based ONLY on the transcript in this exact JSON format:
{
  "questions": ["Question 1 based on actual content", "Question 2"] or ["What would you like to discuss?"],
  "confidence": 0.0 to 1.0,
  "type": "followup",
  "rationale": "Why these questions based on the transcript (or 'Waiting for discussion to begin' if empty)",
  "pivotStrategy": "If discussion is stuck, how to redirect it?"
}""",
    AnalysisType.CROSS_REFERENCE: """Identify connections ONLY within the provided transcript in this exact JSON format:
{
  "connections": "Relationships between actual points discussed (or 'No connections to identify yet')",
  "confidence": 0.0 to 1.0,
  "type": "cross_reference",
  "examples": ["Connection 1 with specific references", "Connection 2"] or []
}""",
    AnalysisType.FACILITATION: """Advise the facilitator based ONLY on the transcript in this exact JSON format:
{
  "guidance": "Current state of the conversation (or 'Discussion has not started yet' if empty)",
  "confidence": 0.0 to 1.0,
  "type": "facilitation",
  "moves": ["Facilitation move 1", "Facilitation move 2"] or [],
  "quietTopics": ["Aspect of the topic nobody has addressed yet"] or []
}""",
}


def _generic_block(analysis_type: str, mode: OutputMode) -> str:
    if mode is OutputMode.JSON:
        return f"""Provide analysis in this exact JSON format:
{{
  "result": "Analysis based on transcript",
  "confidence": 0.0 to 1.0,
  "type": "{analysis_type}"
}}"""
    return """YOUR TASK:
Provide a short analysis of the discussion based only on the transcript.
Respond with only plain text."""


def _type_value(analysis_type: Union[AnalysisType, str]) -> str:
    if isinstance(analysis_type, AnalysisType):
        return analysis_type.value
    return str(analysis_type)


def instruction_block(analysis_type: Union[AnalysisType, str], mode: OutputMode) -> str:
    """Return the type-specific block; unrecognized types get a generic one."""
    blocks = _JSON_BLOCKS if mode is OutputMode.JSON else _TEXT_BLOCKS
    value = _type_value(analysis_type)
    try:
        return blocks[AnalysisType(value)]
    except ValueError:
        return _generic_block(value, mode)


def system_instruction(mode: OutputMode) -> str:
    return _SYSTEM_INSTRUCTIONS[mode]


def build_prompt(
    analysis_type: Union[AnalysisType, str],
    topic: str,
    transcript: str,
    mode: OutputMode = OutputMode.TEXT,
) -> str:
    rules = GROUNDING_RULES
    if mode is OutputMode.JSON:
        rules = f"{rules}\n{_JSON_RULE}"
    body = transcript if transcript.strip() else TRANSCRIPT_PLACEHOLDER
    return (
        f"{rules}\n\n"
        f'Session Context: The current discussion topic is "{topic}".\n\n'
        f"TRANSCRIPT:\n{body}\n\n"
        f"{instruction_block(analysis_type, mode)}"
    )


# Speaker identification runs in two JSON-mode passes: find who introduces
# themselves, then attribute each entry using what the first pass found.

SPEAKER_SYSTEM_INSTRUCTION = (
    "You identify speakers in meeting transcripts. Output only valid JSON. "
    "Only use information explicitly stated in the transcript."
)

_IDENTIFICATION_TASKS = """TASK 1: Find all self-introductions where people state their name, organization, or role.
TASK 2: Identify speaking patterns that might distinguish different participants.
TASK 3: Note any references to other speakers by name.

Output a JSON object with this structure:
{
  "identifiedSpeakers": [
    {
      "name": "Actual name if mentioned",
      "organization": "Their organization if mentioned",
      "role": "Their role if mentioned",
      "firstMentionIndex": "index where they introduce themselves",
      "speakingCharacteristics": "Notable patterns in their speech"
    }
  ],
  "speakerReferences": [
    {
      "index": "entry index",
      "referencedName": "Name mentioned",
      "context": "How they were referenced"
    }
  ]
}

IMPORTANT: Only include information explicitly stated in the transcript. Do not invent details."""

_ATTRIBUTION_RULES = """ATTRIBUTION RULES:
1. If someone introduces themselves in an entry, that entry is definitely theirs
2. Look for contextual clues (e.g., "As I mentioned earlier", "In my organization", etc.)
3. Consider speaking patterns identified earlier
4. If uncertain, keep the generic label
5. The facilitator typically asks questions and guides discussion

Output a JSON object with:
{
  "attributions": [
    {
      "index": "entry index",
      "suggestedSpeaker": "Suggested speaker name or keep original label",
      "confidence": 0.0 to 1.0,
      "reasoning": "Brief explanation"
    }
  ]
}"""


def build_identification_prompt(entries: Sequence[TranscriptEntry]) -> str:
    lines = "\n".join(
        f"[{i}] {entry.speaker}: {entry.text}" for i, entry in enumerate(entries)
    )
    return (
        "Analyze this transcript to identify speakers based on their "
        "introductions and speaking patterns.\n\n"
        f"TRANSCRIPT:\n{lines}\n\n"
        f"{_IDENTIFICATION_TASKS}"
    )


def build_attribution_prompt(
    entries: Sequence[TranscriptEntry], identified_speakers: List[Any]
) -> str:
    lines = "\n".join(
        f'[{i}] Current label: "{entry.speaker}" | Text: "{entry.text}"'
        for i, entry in enumerate(entries)
    )
    return (
        "Based on the speaker information identified, suggest speaker "
        "attributions for each transcript entry.\n\n"
        f"IDENTIFIED SPEAKERS:\n{json.dumps(identified_speakers, indent=2)}\n\n"
        f"TRANSCRIPT ENTRIES TO ATTRIBUTE:\n{lines}\n\n"
        f"{_ATTRIBUTION_RULES}"
    )
