import json
import math
import logging
from dataclasses import dataclass
from typing import Any, Optional, Union

import requests
from fastapi.concurrency import run_in_threadpool

from . import config
from .keyword_emotion import classify
from .models import EmotionAnalysis, EmotionScore
from .rate_limit import IntervalGate

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """You are an expert emotion analyst. Analyze the emotional content of text and respond with a JSON object containing:
{
  "primaryEmotion": "dominant emotion (nostalgia, joy, peace, love, warmth, contemplative, grateful, calm, hopeful, excitement, melancholy, wonder, etc.)",
  "confidence": confidence_score_0_to_1,
  "emotions": [
    {"emotion": "emotion_name", "intensity": intensity_0_to_1}
  ],
  "summary": "brief emotional summary in 1-2 sentences"
}

Focus on nuanced, specific emotions beyond basic happy/sad. Consider cultural context and subtle emotional undertones.
Respond with the JSON object only."""

FALLBACK_CONFIDENCE = 0.7

# ------------------------
# Remote call outcomes
# ------------------------

@dataclass
class Ok:
    analysis: EmotionAnalysis


@dataclass
class ParseFailure:
    reason: str
    content: str = ""


@dataclass
class TransportFailure:
    reason: str


Outcome = Union[Ok, ParseFailure, TransportFailure]


def clamp(value: float) -> float:
    return max(0.0, min(float(value), 1.0))


def is_number(value: Any) -> bool:
    """True for finite ints and floats that convert to float. Bools don't count."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    try:
        return math.isfinite(value)
    except OverflowError:
        return False


def strip_code_fences(content: str) -> str:
    """Removes ```json fences some models wrap around their answer."""
    text = content.strip()
    if text.startswith("```"):
        nl_pos = text.find("\n")
        text = text[nl_pos + 1:] if nl_pos != -1 else ""
        if text.rstrip().endswith("```"):
            text = text.rstrip()[:-3]
    return text.strip()


def extract_content(payload: Any) -> Optional[str]:
    """Pulls choices[0].message.content out of a chat-completion response."""
    if not isinstance(payload, dict):
        return None
    choices = payload.get("choices")
    if not choices or not isinstance(choices, list):
        return None
    first_choice = choices[0]
    if not isinstance(first_choice, dict):
        return None
    message = first_choice.get("message")
    if not isinstance(message, dict):
        return None
    content = message.get("content")
    if not isinstance(content, str) or not content.strip():
        return None
    return content


def parse_analysis(content: str) -> Outcome:
    try:
        data = json.loads(strip_code_fences(content))
    except (ValueError, RecursionError) as e:
        return ParseFailure(f"invalid JSON: {e}", content)

    if not isinstance(data, dict):
        return ParseFailure("analysis is not a JSON object", content)

    primary = data.get("primaryEmotion")
    confidence = data.get("confidence")
    if not isinstance(primary, str) or not primary.strip():
        return ParseFailure("missing primaryEmotion", content)
    if not is_number(confidence):
        return ParseFailure("missing numeric confidence", content)

    primary = primary.strip()
    emotions = []
    raw_emotions = data.get("emotions")
    if isinstance(raw_emotions, list):
        for item in raw_emotions:
            if not isinstance(item, dict):
                continue
            name, intensity = item.get("emotion"), item.get("intensity")
            if isinstance(name, str) and name.strip() and is_number(intensity):
                emotions.append(EmotionScore(emotion=name.strip(), intensity=clamp(intensity)))
    if not emotions:
        emotions = [EmotionScore(emotion=primary, intensity=clamp(confidence))]

    summary = data.get("summary")
    return Ok(EmotionAnalysis(
        primaryEmotion=primary,
        confidence=clamp(confidence),
        emotions=emotions,
        summary=summary if isinstance(summary, str) else "",
    ))


def fallback_analysis(text: str) -> EmotionAnalysis:
    emotion, intensity = classify(text)
    return EmotionAnalysis(
        primaryEmotion=emotion,
        confidence=FALLBACK_CONFIDENCE,
        emotions=[EmotionScore(emotion=emotion, intensity=intensity)],
        summary=f"Detected {emotion} emotion through text analysis.",
    )


def resolve(outcome: Outcome, text: str) -> EmotionAnalysis:
    """Every outcome other than Ok degrades to the keyword classifier."""
    if isinstance(outcome, Ok):
        return outcome.analysis
    if isinstance(outcome, ParseFailure):
        logger.warning(f"Failed to parse GLM response ({outcome.reason}): {outcome.content!r}")
    else:
        logger.warning(f"GLM emotion analysis unavailable: {outcome.reason}")
    return fallback_analysis(text)


# ------------------------
# Client
# ------------------------

class EmotionClient:
    def __init__(
        self,
        api_key: str,
        api_url: str = config.GLM_API_URL,
        model: str = config.GLM_MODEL,
        timeout: float = config.GLM_TIMEOUT_SECONDS,
        gate: Optional[IntervalGate] = None,
    ):
        self.api_key = api_key
        self.api_url = api_url
        self.model = model
        self.timeout = timeout
        self.gate = gate or IntervalGate(config.GLM_RATE_LIMIT_SECONDS)

    def build_messages(self, text: str, context: Optional[str] = None) -> list:
        prompt = f'Analyze the emotional content of this text: "{text}"'
        if context:
            prompt = f"Context: {context}\n\n{prompt}"
        return [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": prompt},
        ]

    def build_payload(self, text: str, context: Optional[str] = None) -> dict:
        return {
            "model": self.model,
            "messages": self.build_messages(text, context),
            "temperature": 0.3,
            "max_tokens": 300,
        }

    async def request_analysis(self, text: str, context: Optional[str] = None) -> Outcome:
        """One outbound attempt, no retries. Waits on the rate-limit gate first."""
        await self.gate.wait()

        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }
        try:
            response = await run_in_threadpool(
                requests.post,
                self.api_url,
                headers=headers,
                json=self.build_payload(text, context),
                timeout=self.timeout,
            )
            response.raise_for_status()
            payload = response.json()
        except ValueError as e:
            # Also catches requests.exceptions.JSONDecodeError
            return ParseFailure(f"response body is not JSON: {e}")
        except requests.exceptions.RequestException as e:
            return TransportFailure(f"GLM API error: {e}")
        except Exception as e:
            logger.error(f"Unexpected error calling GLM API: {e}", exc_info=True)
            return TransportFailure(f"unexpected error: {e}")

        content = extract_content(payload)
        if content is None:
            return ParseFailure("no content received from GLM API", json.dumps(payload, default=str))
        return parse_analysis(content)

    async def analyze(self, text: str, context: Optional[str] = None) -> EmotionAnalysis:
        """
        Classifies the emotion of `text`. Never raises: transport errors and
        unusable replies fall back to keyword classification of `text`.
        """
        if not self.api_key:
            outcome = TransportFailure("GLM_API_KEY not configured")
        else:
            outcome = await self.request_analysis(text, context)
        return resolve(outcome, text)

    async def analyze_voice(self, transcript: str, context: Optional[str] = None) -> EmotionAnalysis:
        return await self.analyze(transcript, context)


emotion_client = EmotionClient(config.GLM_API_KEY)


def get_emotion_client() -> EmotionClient:
    return emotion_client
