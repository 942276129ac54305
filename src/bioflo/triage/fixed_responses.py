"""
Fixed, pre-approved responses.

The two most severe categories are answered from constants only, so the most
safety-critical paths cannot fail because of an upstream outage. The module
also holds the small set of calm fallback messages the gateway may return
instead of generated text.
"""

from __future__ import annotations

from bioflo.triage.base import Category

CRISIS_RESPONSE = """I'm really glad you reached out. When thoughts about self-harm or suicide are present, you deserve immediate, real-world support.

Please contact:
- Your local emergency number or crisis hotline
- Your GP or mental health service
- Someone you trust

You are not weak or broken for feeling this way. A clinician can assess what's going on and build a plan with you.

I can help later with sleep, routines, and small daily habits once you're connected with support, but right now the priority is your safety and having another person involved offline as soon as possible."""

EMERGENCY_RESPONSE = """I can't safely help with acute medical symptoms like chest pain, stroke-like symptoms, or severe breathing issues.

Please seek immediate medical care:
- Call your local emergency number
- Go to the nearest emergency department
- Contact your GP or on-call clinician

These symptoms need in-person evaluation by a healthcare professional."""

# Substituted for any generated answer the safety reviewer blocks
SAFE_FALLBACK_RESPONSE = """I understand you're looking for guidance, and I want to make sure what I share is safe and appropriate.

For medical concerns, I'd strongly recommend talking with a healthcare professional who can give personalised guidance based on your situation.

For general wellness and lifestyle questions, I'm happy to help with evidence-based ideas around sleep, movement, nutrition patterns, and stress management.

What would you like to focus on?"""

# Returned by transport layers when every provider is exhausted
SERVICE_UNAVAILABLE_RESPONSE = (
    "I'm having trouble putting together a reply right now. "
    "Please try again in a moment."
)

# Returned by transport layers when provider credentials are misconfigured
CONFIGURATION_ERROR_RESPONSE = (
    "The coaching service isn't configured correctly at the moment. "
    "Please try again later."
)


class FixedResponseStore:
    """Pure lookup of pre-approved text for terminal categories."""

    RESPONSES: dict[Category, str] = {
        Category.MENTAL_HEALTH_CRISIS: CRISIS_RESPONSE,
        Category.MEDICAL_EMERGENCY: EMERGENCY_RESPONSE,
    }

    def handles(self, category: Category) -> bool:
        return category in self.RESPONSES

    def response_for(self, category: Category) -> str:
        """
        Return the fixed response for a terminal category.

        Raises:
            ValueError: if the category is answered by generation instead.
        """
        try:
            return self.RESPONSES[category]
        except KeyError:
            raise ValueError(
                f"No fixed response for non-terminal category {category.value}"
            ) from None

    @property
    def safe_fallback(self) -> str:
        return SAFE_FALLBACK_RESPONSE
