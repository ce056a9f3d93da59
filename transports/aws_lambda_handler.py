"""AWS Lambda adapter for API Gateway proxy-integration events."""

from __future__ import annotations

from typing import Any, Dict

from bridge.adapter import build_adapter
from bridge.logs import configure_logging
from bridge.settings import Settings, get_settings


def lambda_settings(base: Settings | None = None) -> Settings:
    """API Gateway passes the resource path unprefixed unless FUNCTION_PREFIX says otherwise."""
    base = base or get_settings()
    if "function_prefix" in base.model_fields_set:
        return base
    return base.model_copy(update={"function_prefix": ""})


settings = lambda_settings()
configure_logging(settings.log_level)
adapter = build_adapter(settings)


def handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    return adapter.handle(event, context).asdict()
