from pydantic import BaseModel, ConfigDict, Field
from typing import Dict, List, Optional


RECOGNIZED_LABELS = ("Positive", "Negative", "Neutral", "Mixed", "Failed")
CHART_LABELS = ("Positive", "Negative", "Neutral", "Mixed")
FAILED = "Failed"


class AnalysisResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    text: str
    sentiment: str  # Positive, Negative, Neutral, Mixed, Failed (or whatever the model said)
    justification: str = "N/A"


class SentimentTally(BaseModel):
    Positive: int = 0
    Negative: int = 0
    Neutral: int = 0
    Mixed: int = 0
    Failed: int = 0

    @property
    def analyzed(self) -> int:
        """Posts the model actually classified."""
        return self.Positive + self.Negative + self.Neutral + self.Mixed

    def as_dict(self) -> Dict[str, int]:
        return {label: getattr(self, label) for label in RECOGNIZED_LABELS}


class StrategicInsights(BaseModel):
    summary: str
    insights_list: List[str] = Field(default_factory=list)


class AnalysisReport(BaseModel):
    results: List[AnalysisResult]
    tally: SentimentTally
    analyzed_count: int
    failed_count: int
    batch_count: int
    truncated: bool = False
    errors: List[str] = Field(default_factory=list)
    insights: Optional[StrategicInsights] = None
    interpretation: str = ""
    technical_report: str = ""
