"""
=============================================================================
CHAT SERVICE - Energy assistant backed by Google Gemini
=============================================================================
ChatService runs inside the Flask app. With GEMINI_API_KEY set it asks
the Gemini generateContent endpoint; without a key, or when the call
fails, it answers from a small keyword table instead.

ChatClient is the caller side of POST /api/chat. It never raises:
connection problems, HTTP errors and unexpected payloads become short
messages that can be shown to the user as-is.

Request timeout is fixed at 10 seconds and nothing is retried.
=============================================================================
"""

import logging
import os
from typing import Any, Dict, List, Optional, Tuple

import requests

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 10  # seconds
GEMINI_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"
DEFAULT_MODEL = "gemini-1.5-flash"
AVAILABLE_MODELS = ["gemini-1.5-flash", "gemini-1.5-pro"]
FALLBACK_MODEL = "fallback"

PROMPT = """You are a helpful energy assistant. Help users save money on electricity bills and provide energy-saving tips. Keep responses concise and practical.

User question: {message}

Assistant response:"""

GENERATION_CONFIG = {
    "temperature": 0.7,
    "topK": 40,
    "topP": 0.95,
    "maxOutputTokens": 150,
}

# (keywords, reply) checked in order, first match wins
FALLBACK_REPLIES: List[Tuple[Tuple[str, ...], str]] = [
    (("hello", "hi"),
     "Hello! I'm your energy assistant. How can I help you save on your electricity bill today?"),
    (("save", "reduce"),
     "Here are quick energy-saving tips: Use LED bulbs, unplug devices when not in use, set AC to 78°F, "
     "and run appliances during off-peak hours. These can reduce your bill by 15-25%."),
    (("bill", "cost"),
     "To lower your electricity bill, try: adjusting thermostat settings, using energy-efficient appliances, "
     "improving home insulation, and switching to time-of-use plans if available."),
    (("appliance", "device"),
     "Major energy consumers are: AC/heating (40-50%), water heater (15-20%), lighting (10-15%), "
     "and electronics (5-10%). Focus on these for maximum savings."),
    (("peak", "time"),
     "Peak hours are typically 4-9 PM weekdays. Avoid using heavy appliances during this time. "
     "Run dishwashers, washing machines, and dryers during off-peak hours to save money."),
    (("solar", "renewable"),
     "Solar panels can reduce your bill by 70-90%. Consider factors like roof orientation, local incentives, "
     "and payback period. Many areas offer net metering for excess power."),
]
DEFAULT_REPLY = ("I'm here to help you save energy and reduce costs! Ask me about lowering your bill, "
                 "understanding usage, optimizing appliances, or renewable energy options.")


class ChatError(Exception):
    """Gemini could not be reached or answered with something unusable."""


def fallback_reply(message: str) -> str:
    """Canned answer chosen by simple substring matching."""
    lower = message.lower()
    for keywords, reply in FALLBACK_REPLIES:
        if any(k in lower for k in keywords):
            return reply
    return DEFAULT_REPLY


class ChatService:
    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None):
        self.api_key = api_key if api_key is not None else os.getenv("GEMINI_API_KEY")
        self.model = model or os.getenv("GEMINI_MODEL", DEFAULT_MODEL)

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def ask_gemini(self, text: str, generation_config: Optional[Dict] = None) -> str:
        """
        Send one prompt to Gemini and return the first candidate's text.
        Raises ChatError on transport failures and malformed responses.
        """
        body: Dict[str, Any] = {"contents": [{"parts": [{"text": text}]}]}
        if generation_config:
            body["generationConfig"] = generation_config

        try:
            response = requests.post(
                GEMINI_URL.format(model=self.model),
                params={"key": self.api_key},
                headers={"Content-Type": "application/json"},
                json=body,
                timeout=REQUEST_TIMEOUT,
            )
            response.raise_for_status()
            data = response.json()
            return data["candidates"][0]["content"]["parts"][0]["text"].strip()
        except requests.RequestException as e:
            raise ChatError(f"Gemini request failed: {e}") from e
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise ChatError(f"Unexpected Gemini response: {e}") from e

    def reply(self, message: str, context: Optional[Dict] = None) -> Dict[str, str]:
        """
        Answer a user question. Returns {"reply": ..., "model": ...};
        model is "fallback" when the canned answers were used.

        context (the caller's current bill totals) is accepted so clients
        can send it, but the prompt does not use it.
        """
        if self.configured:
            try:
                reply = self.ask_gemini(PROMPT.format(message=message), GENERATION_CONFIG)
                logger.debug("Gemini reply: %s", reply)
                return {"reply": reply, "model": self.model}
            except ChatError as e:
                logger.warning("Gemini error, using fallback: %s", e)

        return {"reply": fallback_reply(message), "model": FALLBACK_MODEL}

    def health(self) -> Dict[str, Any]:
        return {
            "gemini_configured": self.configured,
            "available_models": list(AVAILABLE_MODELS),
        }


class ChatClient:
    """Caller side of the chat proxy."""

    CONNECTION_FAILED = "⚠️ Cannot connect to server. Make sure the backend is running on {url}"
    UNEXPECTED_FORMAT = "⚠️ Received unexpected response format from server."

    def __init__(self, url: Optional[str] = None, timeout: float = REQUEST_TIMEOUT):
        self.url = url or os.getenv("CHAT_PROXY_URL", "http://localhost:5000/api/chat")
        self.timeout = timeout

    def send(self, message: str, context: Optional[Dict] = None) -> str:
        """Return the assistant's reply, or a user-facing error text."""
        body: Dict[str, Any] = {"message": message}
        if context is not None:
            body["context"] = context

        try:
            response = requests.post(self.url, json=body, timeout=self.timeout)
        except requests.ConnectionError as e:
            logger.error("Chat proxy unreachable: %s", e)
            return self.CONNECTION_FAILED.format(url=self.url)
        except requests.RequestException as e:
            logger.error("Chat error: %s", e)
            return f"⚠️ Error: {e}"

        if not response.ok:
            return f"⚠️ Server error: HTTP error! status: {response.status_code}"

        try:
            data = response.json()
        except ValueError:
            logger.error("Chat proxy returned non-JSON body")
            return self.UNEXPECTED_FORMAT

        if isinstance(data, dict) and data.get("reply"):
            return data["reply"]
        if isinstance(data, dict) and data.get("error"):
            return f"⚠️ Error: {data['error']}"
        logger.error("Unexpected response format: %s", data)
        return self.UNEXPECTED_FORMAT
