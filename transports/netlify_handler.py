"""Netlify Functions entry point for the ``api`` function."""

from __future__ import annotations

from typing import Any, Dict

from bridge.adapter import build_adapter
from bridge.logs import configure_logging
from bridge.settings import get_settings

settings = get_settings()
configure_logging(settings.log_level)

# Without APP_HANDLER every request is answered with 501.
adapter = build_adapter(settings)


def handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    return adapter.handle(event, context).asdict()
