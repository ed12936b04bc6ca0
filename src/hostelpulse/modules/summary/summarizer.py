"""Narrative week-over-week report from a language model."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path

import httpx
from jinja2 import Environment, FileSystemLoader, select_autoescape

from hostelpulse.config import get_env, get_section
from hostelpulse.records import WeekRecord

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).resolve().parent.parent.parent / "templates"
TEMPLATE_NAME = "weekly_summary.txt.j2"
ANTHROPIC_VERSION = "2023-06-01"
FAILURE_TEXT = "Sorry, there was an error generating the analysis. Please try again."


@dataclass
class SummaryResult:
    text: str
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class NarrativeSummarizer:
    """Sends the series to the messages API and returns the report text.

    ``summarize`` never raises: any failure becomes ``SummaryResult.error``.
    """

    def __init__(
        self,
        api_key: str | None = None,
        url: str | None = None,
        model: str | None = None,
        max_tokens: int | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        config = get_section("summary")
        self.api_key = api_key if api_key is not None else get_env("ANTHROPIC_API_KEY")
        self.url = url or config.get("url", "https://api.anthropic.com/v1/messages")
        self.model = model or config.get("model", "claude-sonnet-4-20250514")
        self.max_tokens = int(max_tokens or config.get("max_tokens", 1000))
        self.timeout = float(timeout if timeout is not None else config.get("timeout_seconds", 60))
        self.enabled = bool(config.get("enabled", True))
        self._transport = transport
        self._jinja_env = Environment(
            loader=FileSystemLoader(str(TEMPLATE_DIR)),
            autoescape=select_autoescape(default=False),
        )

    def render_prompt(self, series: list[WeekRecord]) -> str:
        hostels = sorted({name for week in series for name in week.hostels})
        data = [week.to_dict(include_bookings=False) for week in series]
        template = self._jinja_env.get_template(TEMPLATE_NAME)
        return template.render(
            week_count=len(series),
            first_label=series[0].period_label if series else "",
            last_label=series[-1].period_label if series else "",
            hostels=hostels,
            data_json=json.dumps(data, indent=2, ensure_ascii=False),
        )

    async def summarize(self, series: list[WeekRecord]) -> SummaryResult:
        if not series:
            return SummaryResult(text="", error="No weeks loaded")
        if not self.enabled:
            return SummaryResult(text="", error="Narrative summary is disabled")
        if not self.api_key:
            return SummaryResult(text="", error="ANTHROPIC_API_KEY is not set")

        prompt = self.render_prompt(series)
        headers = {
            "x-api-key": self.api_key,
            "anthropic-version": ANTHROPIC_VERSION,
            "content-type": "application/json",
        }
        body = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "messages": [{"role": "user", "content": prompt}],
        }
        logger.info("Requesting narrative summary for %d weeks", len(series))
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.post(self.url, headers=headers, json=body)
            resp.raise_for_status()
            text = resp.json()["content"][0]["text"]
        except (httpx.HTTPError, ValueError, KeyError, IndexError, TypeError) as exc:
            logger.warning("Narrative summary failed: %s", exc)
            return SummaryResult(text=FAILURE_TEXT, error=str(exc) or exc.__class__.__name__)
        return SummaryResult(text=text)
