"""
Safety reviewer for generated answers.

Layers:
1. Local pattern check (fast, offline, can BLOCK or WARN on its own)
2. Remote judge (tone, implicit prescriptive advice)

The judge uses the router's retry discipline against a single provider with
no fallback. If it fails for any reason the verdict is BLOCK, never SAFE.
"""

from __future__ import annotations

from bioflo.config import Settings, get_settings
from bioflo.errors import GatewayError, JudgeUnavailable
from bioflo.logging import get_logger
from bioflo.parsing import parse_json_object
from bioflo.providers import GenerationRequest, Turn
from bioflo.router import ModelRouter
from bioflo.safety.base import SafetyVerdict, Verdict
from bioflo.safety.patterns import LocalPatternCheck
from bioflo.triage.base import Category

logger = get_logger(__name__)

JUDGE_FAILED_REASON = "safety judge unavailable"


class SafetyReviewer:
    """Reviews a fully generated answer and can request one rewrite."""

    JUDGE_PROMPT = """You are a safety judge for a health-adjacent wellness coaching assistant.

You never invent content; you only evaluate.

You must enforce:
- No drug or supplement dosages, frequencies or titration schedules.
- No diagnosing diseases.
- No prescribing or changing medications.
- Fasting, sauna and cold exposure answers must say the assistant is not a doctor and recommend consulting a clinician.
- Acute emergency-like symptoms must be escalated to medical care, not self-care.
- No step-by-step instructions for extreme protocols.

Output only JSON:
{
  "verdict": "SAFE" | "WARN" | "BLOCK",
  "reasons": ["reason1", "reason2"],
  "needs_edit": true | false
}

Verdict meanings:
- "SAFE": the answer is safe and compliant
- "WARN": the answer has minor issues but can be edited to be safe
- "BLOCK": the answer is unsafe and must not be shown"""

    REWRITE_PROMPT = """You are a safety editor for a health-adjacent wellness coaching assistant.

Rewrite the answer so it is safe and compliant with these rules:
- Remove dosages, frequencies, prescriptions or instructions that exceed safety guidelines.
- Remove anything that reads as a diagnosis.
- Add appropriate disclaimers ("I'm not a doctor", "please consult your clinician") for higher-risk topics.
- Keep as much useful educational content as possible.
- Keep the same calm, supportive tone.

Return ONLY the rewritten answer text, no JSON, no explanations."""

    def __init__(
        self,
        router: ModelRouter | None = None,
        settings: Settings | None = None,
        local_check: LocalPatternCheck | None = None,
    ):
        self.router = router
        self.settings = settings or get_settings()
        self.local_check = local_check or LocalPatternCheck()

    @property
    def judge_enabled(self) -> bool:
        return self.router is not None and self.settings.judge_enabled

    async def review(
        self,
        question: str,
        answer: str,
        category: Category | None = None,
    ) -> SafetyVerdict:
        """Return the verdict for one generated answer."""
        verdict = self.local_check.check(answer, category)
        if verdict.is_blocked or not self.judge_enabled:
            return verdict

        try:
            remote = await self._judge(question, answer, category)
        except JudgeUnavailable as e:
            logger.warning("safety_judge_unavailable", error=str(e))
            return SafetyVerdict.block(JUDGE_FAILED_REASON)

        return verdict.merge(remote)

    async def rewrite(
        self,
        question: str,
        answer: str,
        verdict: SafetyVerdict,
        category: Category | None = None,
    ) -> str:
        """
        Ask for a compliant rewrite of a flagged answer.

        Raises:
            ProviderAuthError, ProviderExhaustedError: if the rewrite call fails
        """
        if self.router is None:
            raise JudgeUnavailable("no router configured for rewrites")

        issues = "\n".join(f"- {r}" for r in verdict.reasons) or "- (none given)"
        request = GenerationRequest(
            providers=tuple(self.settings.rewrite_providers),
            model=self.settings.rewrite_model,
            system=self.REWRITE_PROMPT,
            turns=(
                Turn(
                    role="user",
                    content=(
                        f"TOPIC_CATEGORY:\n{category.value if category else 'unknown'}\n\n"
                        f"USER_QUESTION:\n{question}\n\n"
                        f"ISSUES:\n{issues}\n\n"
                        f"UNSAFE_ANSWER:\n{answer}\n\n"
                        "Rewrite this answer to be safe and compliant. "
                        "Return only the rewritten answer."
                    ),
                ),
            ),
            timeout=self.settings.generation_timeout,
            max_output_tokens=2000,
            temperature=0.3,
        )
        result = await self.router.generate(request)
        return result.text

    async def _judge(
        self,
        question: str,
        answer: str,
        category: Category | None,
    ) -> SafetyVerdict:
        request = GenerationRequest(
            providers=(self.settings.judge_provider,),
            model=self.settings.judge_model,
            system=self.JUDGE_PROMPT,
            turns=(
                Turn(
                    role="user",
                    content=(
                        f"TOPIC_CATEGORY:\n{category.value if category else 'unknown'}\n\n"
                        f"USER_QUESTION:\n{question}\n\n"
                        f"ASSISTANT_ANSWER:\n{answer}\n\n"
                        "Evaluate this answer for safety. Respond with JSON only."
                    ),
                ),
            ),
            timeout=self.settings.judge_timeout,
            max_output_tokens=500,
            temperature=0.0,
            json_output=True,
        )
        try:
            result = await self.router.generate(request)
        except GatewayError as e:
            raise JudgeUnavailable(str(e)) from e
        return self._parse(result.text)

    def _parse(self, output: str) -> SafetyVerdict:
        try:
            payload = parse_json_object(output)
        except ValueError as e:
            raise JudgeUnavailable(f"unparseable judge output: {e}") from e

        raw = str(payload.get("verdict", "")).strip().lower()
        try:
            outcome = Verdict(raw)
        except ValueError:
            raise JudgeUnavailable(f"invalid judge verdict '{raw}'") from None

        reasons = payload.get("reasons")
        if not isinstance(reasons, list):
            reasons = []
        return SafetyVerdict(
            outcome=outcome,
            reasons=[str(r) for r in reasons],
            needs_rewrite=outcome is Verdict.WARN and bool(payload.get("needs_edit")),
        )
