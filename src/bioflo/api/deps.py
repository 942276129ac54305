from __future__ import annotations

from collections.abc import Callable
from functools import lru_cache

from bioflo.config import get_settings
from bioflo.gateway import Gateway, build_gateway
from bioflo.plans import PlanGenerator
from bioflo.router import ModelRouter

# Gateway factory injection
GATEWAY_FACTORY: Callable[[], Gateway] | None = None

# Plan generator factory injection
PLAN_GENERATOR_FACTORY: Callable[[], PlanGenerator] | None = None


def set_gateway_factory(factory: Callable[[], Gateway] | None) -> None:
    global GATEWAY_FACTORY
    GATEWAY_FACTORY = factory


def set_plan_generator_factory(factory: Callable[[], PlanGenerator] | None) -> None:
    global PLAN_GENERATOR_FACTORY
    PLAN_GENERATOR_FACTORY = factory


@lru_cache
def _default_gateway() -> Gateway:
    """Built once per process so provider clients are shared."""
    return build_gateway(get_settings())


@lru_cache
def _default_plan_generator() -> PlanGenerator:
    settings = get_settings()
    return PlanGenerator(ModelRouter.from_settings(settings), settings=settings)


def provide_gateway() -> Gateway:
    """Provide the Gateway via injectable factory or the process-wide default."""
    if GATEWAY_FACTORY:
        return GATEWAY_FACTORY()
    return _default_gateway()


def provide_plan_generator() -> PlanGenerator:
    if PLAN_GENERATOR_FACTORY:
        return PLAN_GENERATOR_FACTORY()
    return _default_plan_generator()
