from __future__ import annotations

import json
import logging
from typing import Any, Dict, Iterable, Optional

from google import genai
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from trendhunter.models import Scores, SignalSample

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """
You are the analysis engine of "Trend Hunter", a food analytics platform for local restaurateurs.
Answer only with a JSON object with the keys "summary", "recommendation" and "riskAssessment".
"""


class AnalysisResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    summary: str
    recommendation: str
    risk_assessment: str = Field(alias="riskAssessment")

    def to_dict(self) -> Dict[str, str]:
        return self.model_dump(by_alias=True)


FALLBACK = AnalysisResult(
    summary=(
        "AI Analysis unavailable. Signal propagation indicates a strong correlation "
        "between social discovery and search intent."
    ),
    recommendation="Monitor local supply competitors closely.",
    risk_assessment="Moderate volatility detected.",
)


def signal_summary_text(signals: Iterable[SignalSample]) -> str:
    return "; ".join(
        f"{s.platform.value}: Intensity {s.current_intensity}, Velocity {s.velocity}"
        for s in signals
    )


def build_prompt(term: str, signal_summary: str, scores: Scores,
                 category: str = "", region: str = "") -> str:
    return f"""
    Analyze the following emerging food trend:

    Food: {term}
    Category: {category or "n/a"}
    Region: {region or "n/a"}

    Data Signals:
    {signal_summary or "no signals"}

    Computed Scores:
    Supply Density: {scores.supply_score}/100
    Demand Intensity: {scores.demand_score}/100
    Unmet Demand Score: {scores.unmet_demand_score}/100
    Breakout Probability: {scores.breakout_probability}/100

    Task:
    1. summary: why this trend is happening now, in two sentences.
    2. recommendation: one specific action for a local restaurateur (e.g. "Add as a limited time offer").
    3. riskAssessment: fad vs. staple, and why.
    """


class Summarizer:
    """Gemini-backed trend explanation. summarize() never raises; failures return FALLBACK."""

    def __init__(self, api_key: str = "", model: str = "gemini-2.5-flash", client: Any = None):
        self.api_key = api_key
        self.model = model
        self._client = client

    @classmethod
    def from_settings(cls, s) -> "Summarizer":
        return cls(api_key=s.gemini_api_key, model=s.gemini_model)

    @property
    def client(self) -> Optional[Any]:
        if self._client is None and self.api_key:
            self._client = genai.Client(api_key=self.api_key)
        return self._client

    def summarize(self, term: str, signal_summary: str, scores: Scores,
                  category: str = "", region: str = "") -> AnalysisResult:
        client = self.client
        if client is None:
            return FALLBACK

        try:
            response = client.models.generate_content(
                model=self.model,
                contents=build_prompt(term, signal_summary, scores, category, region),
                config={
                    "system_instruction": SYSTEM_PROMPT,
                    "response_mime_type": "application/json",
                },
            )
            return AnalysisResult.model_validate(json.loads(response.text or ""))
        except (ValueError, ValidationError) as e:
            logger.warning(f"Gemini returned an unusable analysis for {term!r}: {e}")
        except Exception as e:
            logger.error(f"Gemini analysis failed for {term!r}: {e}")
        return FALLBACK
