"""
Macro calculator tool.

Estimates daily energy needs with the Mifflin-St Jeor equation and splits
them into protein, carbohydrate and fat targets.
"""

from __future__ import annotations

from typing import Any

from bioflo.logging import get_logger
from bioflo.prompts import CoachContext
from bioflo.tools.base import BaseTool, ToolResult

logger = get_logger(__name__)

ACTIVITY_MULTIPLIERS = {
    "sedentary": 1.2,
    "light": 1.375,
    "moderate": 1.55,
    "active": 1.725,
    "very_active": 1.9,
}

GOAL_ADJUSTMENTS = {
    "lose_weight": -500,
    "maintain": 0,
    "gain_muscle": 300,
}

# Percent of calories from protein / carbs / fat
MACRO_SPLITS = {
    "lose_weight": (35, 35, 30),
    "maintain": (30, 40, 30),
    "gain_muscle": (30, 40, 30),
}

MEAL_SHARES = {
    1: [("One meal", 1.0)],
    2: [("Meal 1", 0.4), ("Meal 2", 0.6)],
    3: [("Breakfast", 0.3), ("Lunch", 0.35), ("Dinner", 0.35)],
    4: [("Breakfast", 0.25), ("Lunch", 0.3), ("Snack", 0.15), ("Dinner", 0.3)],
}


class MacroCalculatorTool(BaseTool):
    """Daily calorie and macronutrient targets from body stats."""

    TRIGGERS = (
        r"\bmacros?\b",
        r"\bcalories?\b",
        r"\bhow much (protein|carbs?|fat)\b",
        r"\bprotein (target|intake)\b",
    )

    @property
    def name(self) -> str:
        return "macro_calculator"

    def params_from_context(self, context: CoachContext) -> dict[str, Any] | None:
        if context.weight_kg is None or context.height_cm is None or context.age is None:
            return None
        return {
            "weight_kg": context.weight_kg,
            "height_cm": context.height_cm,
            "age": context.age,
            "sex": context.sex or "male",
            "activity_level": context.activity_level or "moderate",
            "goal": context.goal or "maintain",
        }

    async def execute(
        self,
        weight_kg: float,
        height_cm: float,
        age: int,
        sex: str = "male",
        activity_level: str = "moderate",
        goal: str = "maintain",
        meals_per_day: int = 3,
        **kwargs,
    ) -> ToolResult:
        if activity_level not in ACTIVITY_MULTIPLIERS:
            return ToolResult(success=False, error=f"Unknown activity level: {activity_level}")
        if goal not in GOAL_ADJUSTMENTS:
            return ToolResult(success=False, error=f"Unknown goal: {goal}")
        if meals_per_day not in MEAL_SHARES:
            return ToolResult(success=False, error="meals_per_day must be between 1 and 4")

        bmr = 10 * weight_kg + 6.25 * height_cm - 5 * age + (5 if sex == "male" else -161)
        tdee = round(bmr * ACTIVITY_MULTIPLIERS[activity_level])
        # Never target less than 110% of BMR
        calories = round(max(tdee + GOAL_ADJUSTMENTS[goal], bmr * 1.1))

        protein_pct, carbs_pct, fat_pct = MACRO_SPLITS[goal]
        macros = {
            "calories": calories,
            "protein_g": round(calories * protein_pct / 100 / 4),
            "carbs_g": round(calories * carbs_pct / 100 / 4),
            "fat_g": round(calories * fat_pct / 100 / 9),
        }
        meals = [
            {
                "meal": meal,
                "calories": round(calories * share),
                "protein_g": round(macros["protein_g"] * share),
            }
            for meal, share in MEAL_SHARES[meals_per_day]
        ]

        logger.info("macro_calculator_executed", goal=goal, calories=calories)

        return ToolResult(
            success=True,
            data={
                "bmr": round(bmr),
                "tdee": tdee,
                "targets": macros,
                "split_percent": {
                    "protein": protein_pct,
                    "carbs": carbs_pct,
                    "fat": fat_pct,
                },
                "meals": meals,
            },
            metadata={"goal": goal, "activity_level": activity_level},
        )
