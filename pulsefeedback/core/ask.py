"""
Question answering over a recorded session via an OpenAI-compatible
chat-completions endpoint.
"""
import json
import logging
import os
from typing import Any, Dict, Optional

import requests

from .config import PulseConfig
from .types import SessionPayload


logger = logging.getLogger(__name__)

NO_RESPONSE = "No response from AI."

SYSTEM_PROMPT = """You are PulseFeedback Analyst, an assistant that analyzes user behavior data from recorded sessions.

Your role:
- Analyze engagement, emotion, gaze, and other biometric signals
- Identify patterns, trends, and insights
- Provide actionable feedback in human-readable format
- Answer questions about specific moments or overall session patterns

Input data format:
- points: array of timestamped signals (t, emotion, gaze, offScreen, eyesClosed, smile, etc.)
- events: array of session events (task_start, task_end, activity_start, etc.)
- snapshots: optional array of screen snapshots taken during confusion moments

Output format:
1. A human-readable summary (2-3 paragraphs)
2. Key insights bullet points
3. Direct answer to the user's question

Be specific about timestamps when referring to moments. If snapshots are available, reference them by timestamp."""


class AskError(RuntimeError):
    """Raised when a question cannot be sent or the endpoint rejects it."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


def build_session_summary(session: SessionPayload, sample_points: int = 10) -> Dict[str, Any]:
    """Size-limited view of a session: counts, events, the first points and snapshot ids only."""
    return {
        "mode": session.mode.value,
        "startedAt": session.started_at,
        "totalPoints": len(session.points),
        "totalSnapshots": len(session.snapshots),
        "events": [e.to_dict() for e in session.events],
        "samplePoints": [p.to_dict() for p in session.points[:sample_points]],
        "snapshotIds": [{"imageId": s.image_id, "t": s.timestamp} for s in session.snapshots],
    }


class SessionAsker:
    def __init__(
        self,
        api_key: Optional[str] = None,
        config: Optional[PulseConfig] = None,
        session: Optional[requests.Session] = None,
    ):
        self.config = config or PulseConfig()
        self.api_key = api_key if api_key is not None else os.environ.get("OPENAI_API_KEY")
        self.http = session or requests.Session()

    def ask(self, question: str, session: Optional[SessionPayload]) -> str:
        """
        Send ``question`` with a summary of ``session`` and return the reply text.

        Raises:
            AskError: missing question/session (status 400), missing API key
                (status 500) or a failed request (the endpoint's status).
        """
        if not question or session is None:
            raise AskError("Missing question or session", status=400)
        if not self.api_key:
            raise AskError("OPENAI_API_KEY environment variable not set", status=500)

        cfg = self.config
        summary = build_session_summary(session, cfg.llm_sample_points)
        user_content = (
            f"Session Data:\n{json.dumps(summary, indent=2)}\n\n"
            f"User Question: {question}\n\n"
            "Please analyze this session data and answer the user's question. Provide insights about "
            "engagement patterns, emotional states, confusion moments, and any notable behaviors."
        )
        body = {
            "model": cfg.llm_model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": user_content},
            ],
            "temperature": cfg.llm_temperature,
            "max_tokens": cfg.llm_max_tokens,
        }
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }

        try:
            response = self.http.post(cfg.llm_endpoint, headers=headers, json=body, timeout=cfg.llm_timeout_sec)
        except requests.RequestException as exc:
            raise AskError(f"Request to {cfg.llm_endpoint} failed: {exc}") from exc

        if not response.ok:
            try:
                detail = response.json().get("error", {}).get("message")
            except (ValueError, AttributeError):
                detail = None
            logger.warning("[Ask] Endpoint returned %s: %s", response.status_code, detail)
            raise AskError(f"API error: {detail or response.reason}", status=response.status_code)

        try:
            data = response.json()
        except ValueError as exc:
            raise AskError("Invalid response body", status=response.status_code) from exc
        choices = data.get("choices") or []
        if not choices:
            return NO_RESPONSE
        return (choices[0].get("message") or {}).get("content") or NO_RESPONSE
