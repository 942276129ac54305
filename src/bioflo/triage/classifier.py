"""
Message triage classifier.

Runs the ordered rule table first. When no rule fires and the message is long
or touches ambiguous medical/mental-health vocabulary, a single remote
classification call may be issued with a strict timeout. Classification
never fails: any remote problem falls back to the deterministic result.
"""

from __future__ import annotations

from bioflo.config import Settings, get_settings
from bioflo.errors import ClassificationAmbiguous, GatewayError
from bioflo.logging import get_logger
from bioflo.parsing import parse_json_object
from bioflo.providers import GenerationRequest, Turn
from bioflo.router import SINGLE_ATTEMPT, ModelRouter
from bioflo.triage.base import Category, Classification
from bioflo.triage.rules import RuleTable

logger = get_logger(__name__)


class TriageClassifier:
    """
    Maps raw message text to exactly one category.

    The rule pass is pure, so classifying the same text twice without the
    remote call always yields the same category.
    """

    CLASSIFIER_PROMPT = """You are a triage classifier for a wellness and biohacking coaching assistant.

You never answer questions, only label them.

Categories, from least to most severe:
- "general_wellness": sleep, nutrition, training, habits, general optimisation
- "mental_health_non_crisis": stress, worry, low mood, burnout, without any risk to self or others
- "medical_non_urgent": symptoms, lab values, medications or conditions that are not an emergency
- "moderate_risk_protocol": short fasts (up to 72h), sauna or cold exposure protocols, supplement stacks
- "extreme_risk_protocol": dry fasting, fasts longer than 72h, megadosing, stacking extreme stressors
- "medical_emergency": acute symptoms that need emergency care right now
- "mental_health_crisis": any mention of suicide, self-harm or harming others

When in doubt between two categories, choose the more severe one.

Respond ONLY with a JSON object:
{{"category": "<one of the values above>", "reason": "<short explanation>"}}"""

    def __init__(
        self,
        router: ModelRouter | None = None,
        settings: Settings | None = None,
        rules: RuleTable | None = None,
    ):
        self.router = router
        self.settings = settings or get_settings()
        self.rules = rules or RuleTable()

    @property
    def remote_available(self) -> bool:
        return self.router is not None and self.settings.remote_classification_enabled

    def classify_local(self, text: str) -> Classification:
        """Deterministic rule pass only."""
        match = self.rules.match(text)
        if match is None:
            return Classification(
                category=Category.GENERAL_WELLNESS,
                reason="no triage rule matched",
            )
        return Classification(
            category=match.category,
            reason=f"matched '{match.matched_text}'",
            matched_rule=match.rule,
        )

    async def classify(self, text: str) -> Classification:
        """Classify a message. Never raises."""
        local = self.classify_local(text)
        if local.matched_rule is not None:
            return local
        if not self.remote_available or not self.rules.is_ambiguous(text):
            return local

        try:
            remote = await self._classify_remote(text)
        except ClassificationAmbiguous as e:
            logger.warning("remote_classification_ambiguous", error=str(e))
            return local
        except GatewayError as e:
            logger.warning(
                "remote_classification_failed",
                error_type=type(e).__name__,
                error=str(e),
            )
            return local
        return remote

    async def _classify_remote(self, text: str) -> Classification:
        request = GenerationRequest(
            providers=(self.settings.classifier_provider,),
            model=self.settings.classifier_model,
            system=self.CLASSIFIER_PROMPT.format(),
            turns=(
                Turn(
                    role="user",
                    content=f'Classify this user message:\n\n"{text}"',
                ),
            ),
            timeout=self.settings.effective_classification_timeout,
            max_output_tokens=200,
            temperature=0.1,
            json_output=True,
        )
        result = await self.router.generate(request, policy=SINGLE_ATTEMPT)
        return self._parse(result.text)

    def _parse(self, output: str) -> Classification:
        try:
            payload = parse_json_object(output)
        except ValueError as e:
            raise ClassificationAmbiguous(f"unparseable classifier output: {e}") from e

        raw = str(payload.get("category", "")).strip().lower()
        try:
            category = Category(raw)
        except ValueError:
            raise ClassificationAmbiguous(f"invalid category '{raw}'") from None

        reason = str(payload.get("reason") or "remote classification")
        return Classification(category=category, reason=reason, remote_used=True)
