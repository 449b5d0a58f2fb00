"""
Recover structured results from free-text model output.

Model replies are supposed to be a single JSON object but frequently come
wrapped in a markdown code fence or surrounded by prose. ``extract_json``
digs the object out; the ``parse_*`` helpers turn it into results aligned
with the posts that were sent.
"""
import json
import logging
import re
from typing import Any, Dict, List, Optional

from app.core.exceptions import ParseError
from app.schemas.analysis_result import AnalysisResult, StrategicInsights
from app.services.aggregator import normalize_label

logger = logging.getLogger(__name__)

FENCE_RE = re.compile(r"```(?:json|JSON)?[ \t]*\n?([\s\S]*?)\s*```")

_decoder = json.JSONDecoder()


def _outer_span(text: str) -> Optional[Any]:
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end == -1 or end < start:
        return None
    try:
        return json.loads(text[start:end + 1])
    except json.JSONDecodeError:
        return None


def _first_balanced_object(text: str) -> Optional[Dict[str, Any]]:
    idx = text.find("{")
    while idx != -1:
        try:
            value, _ = _decoder.raw_decode(text, idx)
        except json.JSONDecodeError:
            value = None
        if isinstance(value, dict):
            return value
        idx = text.find("{", idx + 1)
    return None


def extract_json(text: str) -> Dict[str, Any]:
    """
    Locate and parse the JSON object embedded in ``text``.

    A fenced block wins when present. Otherwise the span between the first
    '{' and the last '}' is parsed, falling back to the first balanced
    object in the text.

    Raises:
        ParseError: no object could be recovered.
    """
    if not text or not text.strip():
        raise ParseError("The AI returned an empty response.")

    candidates = []
    fenced = FENCE_RE.search(text)
    if fenced and fenced.group(1).strip():
        candidates.append(fenced.group(1))
    candidates.append(text)

    for candidate in candidates:
        value = _outer_span(candidate)
        if isinstance(value, dict):
            return value
        value = _first_balanced_object(candidate)
        if value is not None:
            return value

    if "{" not in text or "}" not in text:
        raise ParseError("The AI response did not contain a JSON object.")
    raise ParseError("The AI response contained malformed JSON.")


def _item_field(item: Any, key: str) -> Optional[str]:
    if not isinstance(item, dict):
        return None
    value = item.get(key)
    if value is None:
        return None
    return str(value)


def parse_batch_payload(payload: Dict[str, Any], posts: List[str]) -> List[AnalysisResult]:
    """
    Align a batch reply with the posts that were sent.

    Accepts either ``{"post_analysis": [{text, sentiment, justification}, ...]}``
    or ``{"sentiments": ["Positive", ...]}``. The submitted post text is kept
    as the result text; the model's echo is only used for logging mismatches.
    """
    if "post_analysis" in payload:
        items = payload["post_analysis"]
        if not isinstance(items, list):
            raise ParseError("'post_analysis' is not a list.")
        if len(items) != len(posts):
            raise ParseError(
                f"The AI returned {len(items)} results for {len(posts)} posts."
            )
        results = []
        for post, item in zip(posts, items):
            echoed = _item_field(item, "text")
            if echoed is not None and echoed.strip() != post:
                logger.debug(f"Model echoed a different text for post {post[:40]!r}")
            results.append(AnalysisResult(
                text=post,
                sentiment=normalize_label(_item_field(item, "sentiment")),
                justification=_item_field(item, "justification") or "N/A",
            ))
        return results

    if "sentiments" in payload:
        labels = payload["sentiments"]
        if not isinstance(labels, list):
            raise ParseError("'sentiments' is not a list.")
        if len(labels) != len(posts):
            raise ParseError(
                f"The AI returned {len(labels)} sentiments for {len(posts)} posts."
            )
        return [
            AnalysisResult(text=post, sentiment=normalize_label(
                None if label is None else str(label)))
            for post, label in zip(posts, labels)
        ]

    raise ParseError("The AI response was missing the expected 'post_analysis' data.")


def parse_post_payload(payload: Dict[str, Any], post: str) -> AnalysisResult:
    """Single-post reply: ``{sentiment, justification}`` or a one-item batch reply."""
    if "post_analysis" in payload or "sentiments" in payload:
        return parse_batch_payload(payload, [post])[0]
    if "sentiment" not in payload:
        raise ParseError("The AI response was missing the 'sentiment' field.")
    return AnalysisResult(
        text=post,
        sentiment=normalize_label(_item_field(payload, "sentiment")),
        justification=_item_field(payload, "justification") or "N/A",
    )


def parse_insights(payload: Dict[str, Any]) -> Optional[StrategicInsights]:
    """Insights either nested under ``strategic_insights`` or at the top level."""
    raw = payload.get("strategic_insights", payload)
    if not isinstance(raw, dict) or not isinstance(raw.get("summary"), str):
        return None
    insights = raw.get("insights_list")
    if not isinstance(insights, list):
        insights = []
    return StrategicInsights(
        summary=raw["summary"],
        insights_list=[str(i) for i in insights],
    )
