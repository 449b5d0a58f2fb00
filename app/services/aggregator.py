from typing import Iterable, Optional, Tuple

import pandas as pd

from app.schemas.analysis_result import (
    AnalysisResult,
    SentimentTally,
    RECOGNIZED_LABELS,
    CHART_LABELS,
    FAILED,
)

SENTIMENT_COLORS = {
    "Positive": "#28a745",
    "Negative": "#dc3545",
    "Neutral": "#6c757d",
    "Mixed": "#ffc107",
    "Failed": "#343a40",
}


def normalize_label(label: Optional[str]) -> str:
    if label is None or not label.strip():
        return "N/A"
    label = label.strip()
    return label[0].upper() + label[1:].lower()


def tally_sentiments(results: Iterable[AnalysisResult]) -> SentimentTally:
    """Count recognized labels. Anything else is left out of the tally."""
    counts = {label: 0 for label in RECOGNIZED_LABELS}
    for r in results:
        label = normalize_label(r.sentiment)
        if label in counts:
            counts[label] += 1
    return SentimentTally(**counts)


def sentiment_percentages(tally: SentimentTally) -> Tuple[float, float]:
    """
    Positive and negative share of successfully analyzed posts.

    Failed posts are not part of the denominator.
    """
    analyzed = tally.analyzed
    if analyzed == 0:
        return 0.0, 0.0
    positive = round(tally.Positive / analyzed * 100, 1)
    negative = round(tally.Negative / analyzed * 100, 1)
    return positive, negative


def build_interpretation(tally: SentimentTally) -> str:
    """Markdown narrative shown under the chart."""
    if tally.analyzed == 0:
        return "No posts were successfully analyzed to generate insights."

    positive, negative = sentiment_percentages(tally)
    lines = [
        "**What these results mean**",
        "",
        f"The analysis of {tally.analyzed} posts shows that the conversation is "
        f"{positive:.1f}% positive and {negative:.1f}% negative. "
        "This indicates the general tone of the discussion.",
    ]
    if tally.Failed:
        lines.append("")
        lines.append(
            f"{tally.Failed} post(s) could not be analyzed and are excluded from these percentages."
        )
    lines += [
        "",
        "**Example Strategic Insights**",
        "",
        "- **Leverage Positive Themes:** Identify common topics within the 'Positive' posts. "
        "These represent what your audience enjoys and can be amplified in future content "
        "and advertising to build on existing goodwill.",
        "- **Address Negative Feedback:** The 'Negative' posts are a valuable source of direct "
        "feedback. Analyze the justifications to pinpoint specific issues or complaints.",
        "- **Monitor and Adapt:** This analysis is a snapshot in time. Repeat it periodically "
        "to monitor shifts in public opinion and adapt campaign strategies accordingly.",
    ]
    return "\n".join(lines)


def build_technical_report(analyzed_count: int, batch_count: int, mode: str) -> str:
    if mode == "per_post":
        technique = (
            "Each post was sent to the language model in its own request, with one "
            "immediate retry when a request failed."
        )
        step = f"The {analyzed_count} social media posts were sent to the model one at a time."
    else:
        technique = (
            "The full list of posts was broken into smaller batches to ensure reliability "
            "and prevent timeouts. Each batch was analyzed independently."
        )
        step = (
            f"The {analyzed_count} social media posts were sent to the model in "
            f"{batch_count} sequential batch(es)."
        )
    return "\n".join([
        "#### Computational Techniques Used",
        "",
        f"The analysis was performed through a secure proxy that calls a large language model. {technique}",
        "",
        "#### Process of Data Analysis (Simplified for Reporting)",
        "",
        f"1. {step}",
        "2. The AI analyzed each post for its emotional tone and provided a justification for its classification.",
        "3. The results were combined and aggregated to create the final visualization and report.",
    ])


def chart_frame(tally: SentimentTally) -> pd.DataFrame:
    """Rows for the distribution bar chart."""
    labels = list(CHART_LABELS)
    if tally.Failed:
        labels.append(FAILED)
    return pd.DataFrame({
        "sentiment": labels,
        "posts": [getattr(tally, label) for label in labels],
    })


def results_frame(results: Iterable[AnalysisResult]) -> pd.DataFrame:
    return pd.DataFrame(
        [r.model_dump() for r in results],
        columns=["text", "sentiment", "justification"],
    )
