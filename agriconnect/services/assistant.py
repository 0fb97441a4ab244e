"""AgriBot: keyword shortcuts first, remote text generation second.

``respond`` never raises. Every failure of the remote model is turned into a
farming-flavoured reply so the chat never shows a raw error.
"""

from __future__ import annotations

from typing import Any, Optional

import httpx
from loguru import logger

from agriconnect.core.config import Settings
from agriconnect.core.errors import RemoteServiceError

ASSISTANT_NAME = "AgriBot 🤖"

ONBOARDING_REPLY = (
    "🌱 I'm here to help with farming questions! Ask me about crops, weather, pests, "
    "or farming techniques. (API key required for full AI features)"
)
UNEXPECTED_SHAPE_REPLY = (
    "🌱 I understand you're asking about farming! I specialize in crop management, soil health, "
    "and sustainable agriculture practices. Can you tell me more about your specific needs?"
)
WARMING_UP_REPLY = (
    "🔄 The AI model is loading. Please try again in 20-30 seconds. "
    "Meanwhile, I can tell you about crop rotation or soil health!"
)
TIMEOUT_REPLY = (
    "⏰ The AI is taking too long to respond. Let me help directly: I specialize in farming "
    "advice like crop selection, pest management, and irrigation techniques!"
)
AUTH_FAILED_REPLY = (
    "🔐 API authentication issue. But I can still help with farming advice! "
    "Ask me about crops, soil, or weather patterns."
)
QUESTION_FALLBACK_REPLY = (
    "🌱 That's a great farming question! While I work on a detailed answer, remember: proper soil "
    "preparation and timely planting are key to successful crops. What specific crop are you working with?"
)
STATEMENT_FALLBACK_REPLY = (
    "🌱 Thanks for sharing! As your farming assistant, I can help with crop advice, weather planning, "
    "pest control, and sustainable practices. What would you like to know more about?"
)

# Insertion order is match priority.
KEYWORD_REPLIES: dict[str, str] = {
    'hello': "👋 Hello! I'm your AgriConnect assistant. How can I help with your farming today?",
    'hi': "👋 Hi there! Ready to talk farming?",
    'agriculture': (
        "🌾 Agriculture is the practice of cultivating plants and livestock. I can help with crop rotation, "
        "soil health, irrigation, pest control, and modern farming techniques!"
    ),
    'crop': (
        "🌱 Crops are plants cultivated for food, fiber, and other uses. Popular crops include maize, wheat, "
        "rice, and vegetables. Need specific advice?"
    ),
    'weather': (
        "☀️ Weather greatly affects farming! I can help you understand seasonal patterns, rainfall needs, "
        "and how to protect crops from extreme weather."
    ),
    'pest': (
        "🐛 Pest management is crucial! Integrated Pest Management (IPM) combines biological, cultural, and "
        "chemical methods. Tell me what pests you're dealing with!"
    ),
    'soil': (
        "🌍 Healthy soil = healthy crops! Soil needs proper pH, nutrients, and organic matter. "
        "Soil testing can guide fertilizer use."
    ),
    'fertilizer': (
        "💪 Fertilizers provide essential nutrients (N-P-K). Organic options include manure and compost, "
        "while synthetic ones offer precise nutrient control."
    ),
    'water': (
        "💧 Proper irrigation is key! Drip irrigation saves water, while sprinklers cover large areas. "
        "The right method depends on your crops and local climate."
    ),
    'maize': (
        "🌽 Maize (corn) needs warm weather, well-drained soil, and regular water. "
        "Plant after last frost and harvest when kernels are firm."
    ),
    'tomato': (
        "🍅 Tomatoes need full sun, support stakes, and consistent watering. "
        "Watch for blight and use mulch to retain moisture."
    ),
    'help': (
        "🤔 I can help with: crop advice, weather impacts, pest control, soil health, irrigation, "
        "and general farming best practices. What do you need?"
    ),
}

GENERATION_PARAMETERS = {
    'max_length': 150,
    'temperature': 0.9,
    'do_sample': True,
}


def match_keyword(user_input: str) -> Optional[str]:
    lowered = user_input.lower()
    for keyword, reply in KEYWORD_REPLIES.items():
        if keyword in lowered:
            return reply
    return None


def extract_reply(payload: Any) -> Optional[str]:
    """Pull generated text out of the three response shapes the inference API uses."""
    if isinstance(payload, dict):
        text = payload.get('generated_text')
        if isinstance(text, str) and text:
            return text
        conversation = payload.get('conversation')
        if isinstance(conversation, dict):
            responses = conversation.get('generated_responses')
            if isinstance(responses, list) and responses and isinstance(responses[0], str):
                return responses[0] or None
    if isinstance(payload, list) and payload and isinstance(payload[0], dict):
        text = payload[0].get('generated_text')
        if isinstance(text, str) and text:
            return text
    return None


class AgriAssistant:
    def __init__(
        self,
        api_key: Optional[str],
        *,
        model_url: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._api_key = api_key or None
        self._model_url = model_url
        self._timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls, config: Settings) -> AgriAssistant:
        return cls(
            config.HUGGINGFACE_API_KEY,
            model_url=config.ASSISTANT_MODEL_URL,
            timeout=config.ASSISTANT_REQUEST_TIMEOUT,
        )

    @property
    def configured(self) -> bool:
        return self._api_key is not None

    async def respond(self, user_input: str) -> str:
        logger.info("Assistant processing: {!r}", user_input)
        if not self.configured:
            logger.info("Assistant has no API key, sending onboarding reply")
            return ONBOARDING_REPLY

        canned = match_keyword(user_input)
        if canned is not None:
            logger.info("Assistant answered from keyword table")
            return canned

        try:
            payload = await self._generate(user_input)
        except RemoteServiceError as exc:
            logger.warning("Assistant remote call failed: {}", exc.message)
            return self._fallback(user_input, exc)

        reply = extract_reply(payload)
        if reply is None:
            logger.warning("Assistant got an unexpected response shape")
            return UNEXPECTED_SHAPE_REPLY
        return reply

    async def _generate(self, user_input: str) -> Any:
        headers = {
            'Authorization': f"Bearer {self._api_key}",
            'Content-Type': 'application/json',
        }
        body = {'inputs': user_input, 'parameters': GENERATION_PARAMETERS}
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.post(self._model_url, headers=headers, json=body)
                response.raise_for_status()
                return response.json()
        except httpx.TimeoutException as exc:
            raise RemoteServiceError('Assistant request timed out', timed_out=True) from exc
        except httpx.HTTPStatusError as exc:
            raise RemoteServiceError(
                f"Assistant service returned {exc.response.status_code}",
                upstream_status=exc.response.status_code,
            ) from exc
        except (httpx.HTTPError, httpx.InvalidURL, ValueError) as exc:
            raise RemoteServiceError(f"Assistant request failed: {exc}") from exc
        except Exception as exc:
            logger.exception("Unexpected assistant client error")
            raise RemoteServiceError(f"Assistant client error: {exc!r}") from exc

    @staticmethod
    def _fallback(user_input: str, error: RemoteServiceError) -> str:
        if error.upstream_status == 503:
            return WARMING_UP_REPLY
        if error.timed_out:
            return TIMEOUT_REPLY
        if error.upstream_status == 401:
            return AUTH_FAILED_REPLY
        if user_input.rstrip().endswith('?'):
            return QUESTION_FALLBACK_REPLY
        return STATEMENT_FALLBACK_REPLY
