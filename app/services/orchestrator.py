"""
Client-side analysis run: split posts into batches, send them one after the
other to the proxy and collect the results.

Calls are strictly sequential. Batch i is parsed and handed to
``on_results`` before batch i+1 is sent, so the UI can render as results
arrive. A failing batch does not stop the run: its posts get ``Failed``
placeholders carrying the error message and the loop moves on.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from app.core.exceptions import InputError, ParseError, TransportError
from app.schemas.analysis_result import (
    AnalysisReport,
    AnalysisResult,
    StrategicInsights,
    FAILED,
)
from app.services.aggregator import (
    build_interpretation,
    build_technical_report,
    sentiment_percentages,
    tally_sentiments,
)
from app.services.extractor import (
    extract_json,
    parse_batch_payload,
    parse_insights,
    parse_post_payload,
)
from app.services.input_parser import cap_posts
from app.services.proxy_client import ProxyClient

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, int, int], None]
ResultsCallback = Callable[[List[AnalysisResult]], None]


def make_batches(posts: List[str], size: int) -> List[List[str]]:
    """Contiguous batches of at most ``size`` posts."""
    if size < 1:
        raise ValueError("Batch size must be at least 1")
    return [posts[i:i + size] for i in range(0, len(posts), size)]


@dataclass
class AnalysisSession:
    """Working state of one run. Replaced wholesale on every new run or reset."""

    posts: List[str] = field(default_factory=list)
    results: List[AnalysisResult] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    insights: Optional[StrategicInsights] = None
    batch_count: int = 0
    truncated: bool = False

    def reset(self, posts: Optional[List[str]] = None, truncated: bool = False) -> None:
        self.posts = list(posts or [])
        self.results = []
        self.errors = []
        self.insights = None
        self.batch_count = 0
        self.truncated = truncated

    @property
    def is_complete(self) -> bool:
        return bool(self.posts) and len(self.results) == len(self.posts)


class BatchOrchestrator:
    def __init__(
        self,
        client: ProxyClient,
        batch_size: int = 25,
        max_posts: int = 500,
        mode: str = "batch",
        attempts: int = 2,
        model_insights: bool = False,
        session: Optional[AnalysisSession] = None,
    ):
        if mode not in ("batch", "per_post"):
            raise ValueError(f"Unknown analysis mode: {mode}")
        if batch_size < 1:
            raise ValueError("Batch size must be at least 1")
        self.client = client
        self.batch_size = batch_size
        self.max_posts = max_posts
        self.mode = mode
        self.attempts = max(1, attempts)
        self.model_insights = model_insights
        self.session = session or AnalysisSession()

    async def run(
        self,
        posts: List[str],
        on_progress: Optional[ProgressCallback] = None,
        on_results: Optional[ResultsCallback] = None,
    ) -> AnalysisReport:
        """
        Analyze ``posts`` and return the aggregated report.

        Raises:
            InputError: there are no posts to analyze. Nothing is sent.
        """
        capped, truncated = cap_posts(posts, self.max_posts)
        if not capped:
            raise InputError("Please paste or upload some text to analyze.")

        self.session.reset(capped, truncated)

        if self.mode == "per_post":
            await self._run_per_post(capped, on_progress, on_results)
        else:
            await self._run_batches(capped, on_progress, on_results)

        if self.model_insights and self.session.insights is None:
            if on_progress:
                on_progress("Finalizing report...", self.session.batch_count, self.session.batch_count)
            await self._request_insights()

        report = self.build_report()
        logger.info(
            f"Run finished: {report.analyzed_count} analyzed, {report.failed_count} failed, "
            f"{len(report.errors)} error(s)"
        )
        return report

    async def _run_batches(self, posts, on_progress, on_results) -> None:
        batches = make_batches(posts, self.batch_size)
        self.session.batch_count = len(batches)
        for i, batch in enumerate(batches):
            if on_progress:
                on_progress(
                    f"AI research assistant is analyzing batch {i + 1} of {len(batches)}...",
                    i, len(batches),
                )
            results = await self._analyze_batch(batch, i + 1, len(batches))
            self.session.results.extend(results)
            if on_results:
                on_results(results)

    async def _analyze_batch(self, batch: List[str], number: int, total: int) -> List[AnalysisResult]:
        try:
            text = await asyncio.to_thread(self.client.analyze_batch, batch)
            payload = extract_json(text)
            results = parse_batch_payload(payload, batch)
        except (TransportError, ParseError) as e:
            message = f"Analysis failed on batch {number}: {e}"
            logger.error(message)
            self.session.errors.append(message)
            return [AnalysisResult(text=p, sentiment=FAILED, justification=message) for p in batch]

        # Per-batch insights only describe that batch, so keep them for single-batch runs.
        if total == 1:
            self.session.insights = parse_insights(payload)
        return results

    async def _run_per_post(self, posts, on_progress, on_results) -> None:
        self.session.batch_count = len(posts)
        for i, post in enumerate(posts):
            if on_progress:
                on_progress(f"AI research assistant is analyzing post {i + 1} of {len(posts)}...", i, len(posts))
            result = await self._analyze_post(post, i + 1)
            self.session.results.append(result)
            if on_results:
                on_results([result])

    async def _analyze_post(self, post: str, number: int) -> AnalysisResult:
        last_error: Optional[Exception] = None
        for attempt in range(1, self.attempts + 1):
            try:
                text = await asyncio.to_thread(self.client.analyze_post, post)
                return parse_post_payload(extract_json(text), post)
            except (TransportError, ParseError) as e:
                last_error = e
                logger.warning(f"Post {number}, attempt {attempt} of {self.attempts} failed: {e}")

        message = f"Analysis failed for post {number} after {self.attempts} attempt(s): {last_error}"
        logger.error(message)
        self.session.errors.append(message)
        return AnalysisResult(text=post, sentiment=FAILED, justification=str(last_error))

    def report_data(self) -> Dict[str, Any]:
        tally = tally_sentiments(self.session.results)
        positive, negative = sentiment_percentages(tally)
        return {
            "total_posts": len(self.session.posts),
            "analyzed_posts": tally.analyzed,
            "failed_posts": tally.Failed,
            "sentiment_counts": tally.as_dict(),
            "positive_percent": positive,
            "negative_percent": negative,
        }

    async def _request_insights(self) -> None:
        if tally_sentiments(self.session.results).analyzed == 0:
            return
        try:
            text = await asyncio.to_thread(self.client.generate_report, self.report_data())
            insights = parse_insights(extract_json(text))
            if insights is None:
                raise ParseError("The AI report was missing the 'summary' field.")
        except (TransportError, ParseError) as e:
            message = f"Could not generate AI insights: {e}"
            logger.error(message)
            self.session.errors.append(message)
            return
        self.session.insights = insights

    def build_report(self) -> AnalysisReport:
        tally = tally_sentiments(self.session.results)
        return AnalysisReport(
            results=list(self.session.results),
            tally=tally,
            analyzed_count=tally.analyzed,
            failed_count=tally.Failed,
            batch_count=self.session.batch_count,
            truncated=self.session.truncated,
            errors=list(self.session.errors),
            insights=self.session.insights,
            interpretation=build_interpretation(tally),
            technical_report=build_technical_report(tally.analyzed, self.session.batch_count, self.mode),
        )
