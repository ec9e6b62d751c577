"""Gateway to the text-classification LLM (any OpenAI-compatible chat endpoint).

Every public method degrades to a deterministic fallback when the gateway is
not configured, switched off, or the upstream call fails. Callers on the leave
workflow never see an exception from here.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

import httpx

from leaveflow.exceptions import UpstreamUnavailableError
from leaveflow.models.enums import EmailDecision
from leaveflow.schemas.ai import (
    ChatReply,
    ExtractedDecision,
    LeaveAnalysis,
    ManagerRecommendation,
    PatternAnalysis,
)

if TYPE_CHECKING:
    from leaveflow.config import Settings

logger = logging.getLogger(__name__)

CLASSIFY_PROMPT = """You are an HR assistant that analyzes leave requests.
Return a JSON object with:
- urgency (1-5)
- category: medical, personal, vacation, emergency, family, other
- sentiment: positive, neutral, negative, urgent, distressed
- riskScore (1-5)
- recommendation: approve, reject, manual_review, request_more_info
- reasoning: short explanation
- suggestedQuestions: array of follow-up questions
- confidence (0-100)"""

RECOMMEND_PROMPT = """You help managers decide on leave requests.
Consider team coverage, the request details and the prior analysis.
Return a JSON object with:
- recommendation: approve, reject, conditional_approve, request_changes
- confidence (0-100)
- reasoning
- conditions: array of conditions for conditional_approve"""

DECISION_PROMPT = """You extract leave approval decisions from manager email replies.
Return a JSON object with:
- decision: APPROVED, REJECTED, PENDING, UNCLEAR
- confidence (0-100)
- extractedInfo: one-line summary of the reply"""

PATTERNS_PROMPT = """You analyze an employee's recent leave history.
Return a JSON object with:
- predictions: array of likely upcoming leave periods with reasoning
- riskLevel: low, medium, high (burnout risk)
- recommendations: array of suggestions
- patterns: array of observed patterns
- healthScore (1-10): work-life balance score"""

CHAT_PROMPT = """You are an HR assistant for a leave management system.
Help with leave policy questions, application procedures and status inquiries.
User role: {role}. Be concise. If you do not know the answer, refer the user to HR."""

CHAT_UNAVAILABLE = (
    "I'm sorry, the assistant is currently unavailable. "
    "Please contact your HR department for help with leave questions."
)


def _parse_json_content(content: str) -> dict[str, Any]:
    """Parse a model reply that may wrap its JSON in a markdown code fence."""
    text = content.strip()
    if "```json" in text:
        text = text.split("```json", 1)[1].split("```", 1)[0]
    elif text.startswith("```"):
        text = text.split("```", 2)[1]
    data = json.loads(text.strip())
    if not isinstance(data, dict):
        msg = "Expected a JSON object"
        raise ValueError(msg)
    return data


def _clamp(value: Any, low: int, high: int, default: int) -> int:
    try:
        number = round(float(value))
    except (TypeError, ValueError, OverflowError):
        return default
    return max(low, min(high, number))


def _str_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(item) for item in value]


def keyword_decision(body: str) -> ExtractedDecision:
    """Best-effort decision when no model is available."""
    lowered = body.lower()
    if "approve" in lowered:
        return ExtractedDecision(
            decision=EmailDecision.APPROVED, confidence=70, extracted_info="Basic keyword detection"
        )
    if "reject" in lowered:
        return ExtractedDecision(
            decision=EmailDecision.REJECTED, confidence=70, extracted_info="Basic keyword detection"
        )
    return ExtractedDecision(decision=EmailDecision.UNCLEAR, confidence=0, extracted_info="No clear decision found")


class ClassifierGateway:
    """Process-wide handle on the classification model, built once at startup."""

    def __init__(self, settings: Settings, client: httpx.AsyncClient | None = None) -> None:
        self._api_key = settings.deepseek_api_key
        self._model = settings.deepseek_model
        self._kill_switch = settings.ai_kill_switch
        self._client = client or httpx.AsyncClient(
            base_url=settings.deepseek_base_url,
            timeout=httpx.Timeout(settings.classifier_timeout_seconds),
        )

    @property
    def configured(self) -> bool:
        return bool(self._api_key) and not self._kill_switch

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _complete(
        self,
        system_prompt: str,
        user_content: str,
        *,
        temperature: float,
        max_tokens: int,
        json_mode: bool = True,
    ) -> str:
        """Run one chat completion. Raises UpstreamUnavailableError on any failure."""
        if not self.configured:
            raise UpstreamUnavailableError("Classifier is not configured")

        payload: dict[str, Any] = {
            "model": self._model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_content},
            ],
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        if json_mode:
            payload["response_format"] = {"type": "json_object"}

        try:
            response = await self._client.post(
                "/chat/completions",
                json=payload,
                headers={"Authorization": f"Bearer {self._api_key}"},
            )
            response.raise_for_status()
            return response.json()["choices"][0]["message"]["content"]
        except (httpx.HTTPError, KeyError, IndexError, TypeError, ValueError) as exc:
            raise UpstreamUnavailableError(f"Classifier request failed: {exc}") from exc

    async def _complete_json(self, system_prompt: str, user_content: str, **kwargs: Any) -> dict[str, Any]:
        content = await self._complete(system_prompt, user_content, **kwargs)
        try:
            return _parse_json_content(content)
        except ValueError as exc:
            raise UpstreamUnavailableError("Classifier returned malformed JSON") from exc

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def classify(self, text: str, metadata: dict[str, Any]) -> LeaveAnalysis:
        """Annotate a leave request with urgency, category, risk and a recommendation."""
        context = "\n".join(f"{key}: {value}" for key, value in metadata.items())
        try:
            data = await self._complete_json(
                CLASSIFY_PROMPT,
                f"LEAVE REQUEST\n{context}\nReason: \"{text}\"",
                temperature=0.3,
                max_tokens=500,
            )
        except UpstreamUnavailableError as exc:
            logger.warning("Leave analysis unavailable, using fallback: %s", exc.message)
            return LeaveAnalysis(
                reasoning=(
                    "AI analysis unavailable - classifier not configured"
                    if not self.configured
                    else "AI analysis failed - manual review required"
                ),
                is_fallback=True,
            )

        analysis = LeaveAnalysis(
            urgency=_clamp(data.get("urgency"), 1, 5, 3),
            category=str(data.get("category") or "general"),
            sentiment=str(data.get("sentiment") or "neutral"),
            risk_score=_clamp(data.get("riskScore", data.get("risk_score")), 1, 5, 2),
            recommendation=str(data.get("recommendation") or "manual_review"),
            reasoning=str(data.get("reasoning") or ""),
            suggested_questions=_str_list(data.get("suggestedQuestions", data.get("suggested_questions"))),
            confidence=_clamp(data.get("confidence"), 0, 100, 0),
        )
        logger.info("Leave analysis completed: urgency=%d category=%s", analysis.urgency, analysis.category)
        return analysis

    async def recommend(
        self,
        request: dict[str, Any],
        approver: dict[str, Any],
        team_context: dict[str, Any],
    ) -> ManagerRecommendation:
        """Produce decision support for the approving manager."""
        content = (
            "LEAVE APPROVAL DECISION SUPPORT\n"
            f"Request: {json.dumps(request, default=str)}\n"
            f"Approver: {json.dumps(approver, default=str)}\n"
            f"Team: {json.dumps(team_context, default=str)}"
        )
        try:
            data = await self._complete_json(RECOMMEND_PROMPT, content, temperature=0.2, max_tokens=600)
        except UpstreamUnavailableError as exc:
            logger.warning("Approval recommendation unavailable, using fallback: %s", exc.message)
            return ManagerRecommendation(
                reasoning="AI recommendation unavailable - manual review required",
                is_fallback=True,
            )

        return ManagerRecommendation(
            recommendation=str(data.get("recommendation") or "manual_review"),
            confidence=_clamp(data.get("confidence"), 0, 100, 50),
            reasoning=str(data.get("reasoning") or ""),
            conditions=_str_list(data.get("conditions")),
        )

    async def extract_decision(self, message_body: str) -> ExtractedDecision:
        """Read an approve/reject decision out of an email reply."""
        if not self.configured:
            return keyword_decision(message_body)
        try:
            data = await self._complete_json(
                DECISION_PROMPT,
                f"EMAIL CONTENT:\n{message_body}",
                temperature=0.1,
                max_tokens=300,
            )
        except UpstreamUnavailableError as exc:
            logger.warning("Email decision extraction failed: %s", exc.message)
            return ExtractedDecision(extracted_info="Email processing failed")

        raw_decision = str(data.get("decision") or "").upper()
        try:
            decision = EmailDecision(raw_decision)
        except ValueError:
            decision = EmailDecision.UNCLEAR
        return ExtractedDecision(
            decision=decision,
            confidence=_clamp(data.get("confidence"), 0, 100, 0),
            extracted_info=str(data.get("extractedInfo", data.get("extracted_info")) or ""),
        )

    async def chat(self, message: str, role: str, context: dict[str, Any]) -> ChatReply:
        """Answer a free-form question from the assistant panel."""
        content = message
        if context:
            content += f"\nContext: {json.dumps(context, default=str)}"
        try:
            answer = await self._complete(
                CHAT_PROMPT.format(role=role),
                content,
                temperature=0.7,
                max_tokens=400,
                json_mode=False,
            )
        except UpstreamUnavailableError as exc:
            logger.warning("Chat assistant unavailable: %s", exc.message)
            return ChatReply(response=CHAT_UNAVAILABLE, helpful=False)
        return ChatReply(response=answer, helpful=True)

    async def predict_patterns(
        self,
        employee: dict[str, Any],
        history: list[dict[str, Any]],
        timeframe_days: int,
    ) -> PatternAnalysis:
        """Look for burnout signals and recurring patterns in recent leave."""
        content = (
            f"EMPLOYEE: {json.dumps(employee, default=str)}\n"
            f"Recent leave history ({timeframe_days} days):\n{json.dumps(history, default=str, indent=2)}"
        )
        try:
            data = await self._complete_json(PATTERNS_PROMPT, content, temperature=0.4, max_tokens=600)
        except UpstreamUnavailableError as exc:
            logger.warning("Pattern prediction unavailable: %s", exc.message)
            return PatternAnalysis(insights="AI predictions unavailable")

        health = data.get("healthScore", data.get("health_score"))
        predictions = data.get("predictions")
        return PatternAnalysis(
            predictions=predictions if isinstance(predictions, list) else [],
            risk_level=str(data.get("riskLevel", data.get("risk_level")) or "unknown"),
            recommendations=_str_list(data.get("recommendations")),
            patterns=_str_list(data.get("patterns")),
            health_score=_clamp(health, 1, 10, 5) if health is not None else None,
        )
