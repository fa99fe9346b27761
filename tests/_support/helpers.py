"""Small builders used by several test modules."""

from __future__ import annotations

import base64
from typing import Any

from prometheus_client.parser import text_string_to_metric_families

from instrumentation_demo.core.settings import DemoSettings


def make_settings(**overrides: Any) -> DemoSettings:
    """Settings that ignore any ``.env`` file."""
    return DemoSettings(_env_file=None, **overrides)


def basic_auth_header(user: str, password: str) -> dict[str, str]:
    token = base64.b64encode(f"{user}:{password}".encode()).decode()
    return {"Authorization": f"Basic {token}"}


def parse_exposition(text: str) -> dict[str, Any]:
    """Parse exposition text into ``{family_name: Metric}``."""
    return {family.name: family for family in text_string_to_metric_families(text)}


def sample_values(family: Any, sample_name: str) -> list[tuple[dict[str, str], float]]:
    return [(s.labels, s.value) for s in family.samples if s.name == sample_name]
