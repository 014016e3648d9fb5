# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 quota-rotator contributors

"""
OpenAI gateway for SEO content generation.

Calls go through litellm.acompletion with the selected key passed as
api_key. Cost is taken from litellm's pricing table when the response
reports token usage, otherwise from a fixed per-call estimate, and is
converted to integer units (1 unit = $0.01 by default, rounded up).
"""

import json
import logging
from typing import Any, Dict, List, Optional, Sequence

import litellm

from ..core.constants import (
    DEFAULT_DOLLARS_PER_UNIT,
    DEFAULT_OPENAI_COST_ESTIMATES,
    DEFAULT_OPENAI_MODEL,
    DEFAULT_REQUEST_TIMEOUT,
    OPENAI_CALL_ANALYSIS,
    OPENAI_CALL_DESCRIPTION,
    OPENAI_CALL_TAGS,
    OPENAI_CALL_TITLE,
    OPENAI_MAX_TOKENS,
    OPENAI_QUOTA_MARKERS,
)
from ..core.types import ProviderCallResult, ProviderType
from ..usage.selection.engine import CredentialSelector
from ..usage.tracking.engine import UsageRecorder, dollars_to_units
from .base import ProviderGateway

lib_logger = logging.getLogger("quota_rotator")


class OpenAIGateway(ProviderGateway):
    """Gateway for OpenAI chat completions."""

    provider_type = ProviderType.OPENAI

    def __init__(
        self,
        selector: CredentialSelector,
        recorder: UsageRecorder,
        model: str = DEFAULT_OPENAI_MODEL,
        cost_estimates: Optional[Dict[str, float]] = None,
        dollars_per_unit: float = DEFAULT_DOLLARS_PER_UNIT,
        use_reported_usage: bool = True,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
    ):
        super().__init__(selector, recorder)
        self._model = model
        self._cost_estimates = dict(DEFAULT_OPENAI_COST_ESTIMATES)
        self._cost_estimates.update(cost_estimates or {})
        for call_type, cost in self._cost_estimates.items():
            if cost < 0:
                raise ValueError(
                    f"Cost estimate for {call_type} must be non-negative, got {cost!r}"
                )
        if dollars_per_unit <= 0:
            raise ValueError(
                f"dollars_per_unit must be positive, got {dollars_per_unit!r}"
            )
        self._dollars_per_unit = dollars_per_unit
        self._use_reported_usage = use_reported_usage
        self._timeout = timeout

    # =========================================================================
    # OPERATIONS
    # =========================================================================

    async def generate_optimized_title(
        self,
        owner_id: str,
        original_title: str,
        keywords: Sequence[str],
        style_prompt: str = "",
    ) -> Optional[str]:
        """Generate an SEO-optimized title under 60 characters."""
        prompt = (
            "Create a YouTube video title optimized for SEO that's engaging and clickable.\n"
            f'Original title: "{original_title}"\n'
            f"Target keywords: {', '.join(keywords)}\n"
            "The title should be attention-grabbing, include important keywords, "
            "and be under 60 characters.\n"
            f"{style_prompt}\n"
            "Only return the new title text without any explanations or quotes."
        )
        content = await self._complete(owner_id, OPENAI_CALL_TITLE, prompt)
        return content.strip() if content else None

    async def generate_optimized_description(
        self,
        owner_id: str,
        original_description: str,
        keywords: Sequence[str],
        video_title: str = "",
        include_timestamps: bool = True,
    ) -> Optional[str]:
        """Generate an SEO-optimized description of 150-200 words."""
        timestamps = (
            "3. Include timestamps for key sections (create 3-5 timestamps)"
            if include_timestamps
            else "3. Do not include timestamps"
        )
        title_line = f'Video title: "{video_title}"\n' if video_title else ""
        prompt = (
            "Create a YouTube video description optimized for SEO.\n"
            f"{title_line}"
            f'Original description: "{original_description}"\n'
            f"Target keywords: {', '.join(keywords)}\n\n"
            "The description should:\n"
            "1. Include target keywords naturally in the first 2-3 sentences\n"
            "2. Be 150-200 words in length\n"
            f"{timestamps}\n"
            "4. Have a clear call-to-action\n"
            "5. Include relevant hashtags at the end\n\n"
            "Only return the new description without any explanations."
        )
        content = await self._complete(owner_id, OPENAI_CALL_DESCRIPTION, prompt)
        return content.strip() if content else None

    async def generate_tag_suggestions(
        self,
        owner_id: str,
        video_title: str,
        video_description: str,
        existing_tags: Sequence[str] = (),
    ) -> List[str]:
        """
        Suggest 15 tags for a video.

        Returns an empty list if the model's answer is not usable JSON;
        the call is still charged.
        """
        prompt = (
            "Generate a list of 15 optimized YouTube tags/keywords for my video.\n\n"
            f'Video title: "{video_title}"\n'
            f'Video description: "{video_description}"\n'
            f"Existing tags: {', '.join(existing_tags)}\n\n"
            "Rules for the tags:\n"
            "1. Include a mix of broad, medium, and specific long-tail keywords\n"
            "2. Each tag should be 1-5 words maximum\n"
            '3. Return a JSON object of the form {"tags": [string, ...]}\n'
            "4. Don't repeat existing tags\n"
            "5. Focus on searchable terms related to the content\n"
            "6. Include some trending/popular related terms\n\n"
            "Return ONLY valid JSON without any additional text or explanation."
        )
        content = await self._complete(
            owner_id, OPENAI_CALL_TAGS, prompt, json_response=True
        )
        return parse_tag_suggestions(content)

    async def analyze_video_content(
        self,
        owner_id: str,
        video_title: str,
        video_description: str,
        tags: Sequence[str] = (),
    ) -> Optional[Dict[str, Any]]:
        """
        Analyze a video's metadata for SEO issues.

        Returns:
            {"score": int, "issues": [...], "suggestions": {"title", "description",
            "tags"}} or None if the model's answer is not a JSON object
        """
        prompt = (
            "Analyze this YouTube video content for SEO improvement opportunities.\n\n"
            f'Video title: "{video_title}"\n'
            f'Video description: "{video_description}"\n'
            f"Tags: {', '.join(tags)}\n\n"
            "Provide a detailed analysis with:\n"
            "1. SEO score (0-100)\n"
            "2. List of specific issues that should be improved\n"
            "3. Suggestions for title improvement\n"
            "4. Suggestions for description improvement\n"
            "5. Suggested tags to add\n\n"
            "Return the analysis as a JSON object with the following structure:\n"
            '{"score": number, "issues": string[], '
            '"suggestions": {"title": string, "description": string, "tags": string[]}}'
        )
        content = await self._complete(
            owner_id, OPENAI_CALL_ANALYSIS, prompt, json_response=True
        )
        if not content:
            return None
        try:
            analysis = json.loads(content)
        except ValueError as e:
            lib_logger.warning(f"Could not parse video analysis JSON: {e}")
            return None
        return analysis if isinstance(analysis, dict) else None

    # =========================================================================
    # COST
    # =========================================================================

    def units_for(self, call_type: str, response: Any) -> int:
        """
        Units to charge for a completed call.

        Uses litellm.completion_cost when the response carries usage and
        reported usage is enabled; falls back to the per-call estimate when
        it does not, or when the model has no known pricing.
        """
        cost = None
        if self._use_reported_usage and getattr(response, "usage", None):
            try:
                cost = litellm.completion_cost(
                    completion_response=response, model=self._model
                )
            except Exception as e:
                lib_logger.debug(f"Cost calculation failed for {self._model}: {e}")
                cost = None

        if not cost:
            cost = self._cost_estimates[call_type]
        return dollars_to_units(cost, self._dollars_per_unit)

    # =========================================================================
    # ERROR CLASSIFICATION
    # =========================================================================

    def classify_error(self, error: Exception) -> ProviderCallResult:
        """
        Classify a failed completion.

        401/403 mean the key is invalid or revoked. 429 is a rejection only
        when it reports exhausted billing quota; a plain rate limit is a
        transient failure.
        """
        status_code = getattr(error, "status_code", None)
        if status_code in (401, 403):
            return ProviderCallResult.rejected(error, status_code)
        if status_code == 429:
            message = str(error).lower()
            if any(marker in message for marker in OPENAI_QUOTA_MARKERS):
                return ProviderCallResult.rejected(error, status_code)
        return ProviderCallResult.failure(error, status_code)

    # =========================================================================
    # PRIVATE METHODS
    # =========================================================================

    async def _complete(
        self,
        owner_id: str,
        call_type: str,
        prompt: str,
        json_response: bool = False,
    ) -> Optional[str]:
        async def call(secret: str) -> ProviderCallResult:
            kwargs: Dict[str, Any] = {
                "model": self._model,
                "messages": [{"role": "user", "content": prompt}],
                "max_tokens": OPENAI_MAX_TOKENS[call_type],
                "api_key": secret,
                "timeout": self._timeout,
            }
            if json_response:
                kwargs["response_format"] = {"type": "json_object"}

            response = await litellm.acompletion(**kwargs)
            content = response.choices[0].message.content
            return ProviderCallResult.ok(content, self.units_for(call_type, response))

        return await self._execute(owner_id, call_type, call)


def parse_tag_suggestions(content: Optional[str]) -> List[str]:
    """
    Extract tags from a model answer.

    Accepts {"tags": [...]} or a bare JSON array; anything else yields [].
    """
    if not content:
        return []
    try:
        data = json.loads(content)
    except ValueError as e:
        lib_logger.warning(f"Could not parse tag suggestions JSON: {e}")
        return []

    if isinstance(data, dict):
        data = data.get("tags")
    if not isinstance(data, list):
        return []
    return [str(tag).strip() for tag in data if isinstance(tag, str) and tag.strip()]
