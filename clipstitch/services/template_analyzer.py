"""Vision-model analysis of sampled frames.

Sends the frames to the OpenAI chat-completions API and parses the JSON
template description out of the reply.
"""

import json
import logging
import re
from typing import Any

import httpx

from clipstitch.config import get_settings
from clipstitch.exceptions import ExtractionError
from clipstitch.services.frame_sampler import SampledFrame

logger = logging.getLogger(__name__)

OPENAI_CHAT_URL = "https://api.openai.com/v1/chat/completions"
JSON_BLOCK_PATTERN = re.compile(r"\{[\s\S]*\}")

ANALYSIS_PROMPT = """Analyze these TikTok video frames. Read ALL text overlays you see.

IMPORTANT: Find EVERY numbered location (1), 2), 3)... up to the highest number).
Don't stop at 5 or 10 - some videos have 15-20+ locations.

For each frame, extract:
- The numbered location text (like "1) Dean's Village" or "5) Afternoon Tea at The Willow")
- Any intro/hook text
- Any outro/CTA text
- FONT STYLE: Describe the font used

Return this JSON:
{
  "hookText": "the intro title text you see",
  "locations": [
    {"number": 1, "name": "exact location name from frame", "timestamp": 1},
    {"number": 2, "name": "exact location name from frame", "timestamp": 2}
  ],
  "outroText": "any ending text",
  "totalLocations": <count of locations found>,
  "fontStyle": {
    "titleFont": {
      "style": "sans-serif|serif|script|display",
      "weight": "regular|bold|heavy",
      "description": "brief description"
    },
    "locationFont": {
      "style": "sans-serif|serif|script|display",
      "weight": "regular|bold|heavy",
      "description": "brief description"
    }
  }
}

Read the ACTUAL text from frames. Don't guess or make up locations."""


def build_message_content(frames: list[SampledFrame]) -> list[dict[str, Any]]:
    """Prompt first, then each frame followed by its time label."""
    content: list[dict[str, Any]] = [{"type": "text", "text": ANALYSIS_PROMPT}]
    for i, frame in enumerate(frames):
        content.append({
            "type": "image_url",
            "image_url": {"url": f"data:image/jpeg;base64,{frame.base64}"},
        })
        content.append({"type": "text", "text": f"[Frame {i + 1} at ~{i} seconds]"})
    return content


def parse_analysis(text: str) -> dict[str, Any]:
    """Pull the first JSON object out of the model reply."""
    match = JSON_BLOCK_PATTERN.search(text)
    if match:
        try:
            parsed = json.loads(match.group(0))
        except json.JSONDecodeError:
            logger.warning("[EXTRACT] Model reply contained malformed JSON")
        else:
            if isinstance(parsed, dict):
                return parsed
    return {"raw": text}


class TemplateAnalyzer:
    """OpenAI vision client for template extraction."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        settings = get_settings()
        self.api_key = api_key if api_key is not None else settings.openai_api_key
        self.model = model or settings.openai_model
        self.max_tokens = settings.openai_max_tokens
        self.timeout = settings.openai_timeout_s
        self._transport = transport

    async def analyze(self, frames: list[SampledFrame]) -> dict[str, Any]:
        if not self.api_key:
            raise ExtractionError("OPENAI_API_KEY is not configured")

        logger.info(f"[EXTRACT] Sending {len(frames)} frames to {self.model}...")
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(
                    OPENAI_CHAT_URL,
                    headers={
                        "Authorization": f"Bearer {self.api_key}",
                        "Content-Type": "application/json",
                    },
                    json={
                        "model": self.model,
                        "max_tokens": self.max_tokens,
                        "messages": [{"role": "user", "content": build_message_content(frames)}],
                    },
                )
        except httpx.TimeoutException as e:
            logger.error("OpenAI API timeout")
            raise ExtractionError("OpenAI API timeout") from e
        except httpx.HTTPError as e:
            raise ExtractionError(f"OpenAI API request failed: {e}") from e

        if response.status_code != 200:
            logger.error(f"OpenAI API error: {response.status_code} - {response.text}")
            raise ExtractionError(f"OpenAI API error: {response.status_code} - {response.text}")

        result = response.json()
        choices = result.get("choices") or [{}]
        reply = (choices[0].get("message") or {}).get("content") or ""
        return parse_analysis(reply)
