"""Speaker identification for labelled transcripts.

Two model calls per request: the first collects self-introductions and
speaking patterns, the second suggests a speaker for every entry using what
the first found. Suggestions are returned for review; nothing is relabelled
here.
"""

import logging
from typing import Any, Dict, List, Tuple

from .errors import UpstreamErrorKind, UpstreamFailure
from .prompts import (
    SPEAKER_SYSTEM_INSTRUCTION,
    build_attribution_prompt,
    build_identification_prompt,
)
from .schemas import SpeakerIdentificationRequest, SpeakerMetadata
from .service import ProfiledService
from .shaping import looks_like_markup, parse_json_object

logger = logging.getLogger(__name__)

REVIEW_MESSAGE = "Speaker identification complete. Review and confirm attributions."


def _object_list(value: Any) -> List[Dict[str, Any]]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]


class SpeakerIdentificationService(ProfiledService):
    request_model = SpeakerIdentificationRequest

    async def handle(self, payload: Any) -> Dict[str, Any]:
        return await self.identify(payload)

    async def _generate_object(self, prompt: str, stage: str) -> Tuple[Dict[str, Any], int]:
        completion = await self._generate(prompt, SPEAKER_SYSTEM_INSTRUCTION)
        parsed = parse_json_object(completion.text)
        if parsed is None:
            raise UpstreamFailure(
                UpstreamErrorKind.INVALID_OUTPUT,
                f"{stage} pass did not return a JSON object",
            )
        return parsed, completion.tokens_used

    async def identify(self, payload: Any) -> Dict[str, Any]:
        request = self.validator.validate(payload)
        self._check_rate_limit(request.client_id)

        entries = request.transcript
        logger.info(
            f"[{self.profile.name}] speaker identification request: entries={len(entries)}"
        )
        if any(looks_like_markup(entry.text) for entry in entries):
            logger.warning(f"[{self.profile.name}] transcript contains HTML/CSS markup")

        found, identification_tokens = await self._generate_object(
            build_identification_prompt(entries), "identification"
        )
        speakers = _object_list(found.get("identifiedSpeakers"))

        attributed, attribution_tokens = await self._generate_object(
            build_attribution_prompt(entries, speakers), "attribution"
        )
        attributions = _object_list(attributed.get("attributions"))

        tokens_used = identification_tokens + attribution_tokens
        logger.info(
            f"[{self.profile.name}] speaker identification success: "
            f"speakers={len(speakers)} attributions={len(attributions)} "
            f"tokens_used={tokens_used}"
        )
        return {
            "success": True,
            "identifiedSpeakers": speakers,
            "attributions": attributions,
            "message": REVIEW_MESSAGE,
            "metadata": SpeakerMetadata(
                entry_count=len(entries),
                tokens_used=max(tokens_used, 0),
                timestamp=self._clock().isoformat(),
            ).to_json_dict(),
        }
