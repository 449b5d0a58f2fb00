import json
import math

import pytest

from app.core.exceptions import InputError, TransportError
from app.services.input_parser import display_text, read_upload, resolve_posts
from app.services.orchestrator import AnalysisSession, BatchOrchestrator, make_batches


def batch_reply(posts, label="Positive"):
    return "```json\n" + json.dumps({
        "post_analysis": [
            {"text": p, "sentiment": label, "justification": f"because {p}"} for p in posts
        ],
        "strategic_insights": {"summary": "What these results mean...", "insights_list": ["1", "2", "3"]},
    }) + "\n```"


class FakeProxy:
    """Stands in for ProxyClient; records calls in order."""

    def __init__(self, fail_batches=(), garbage_batches=(), post_failures=None, report=None):
        self.calls = []
        self.fail_batches = set(fail_batches)
        self.garbage_batches = set(garbage_batches)
        self.post_failures = dict(post_failures or {})
        self.report = report

    def analyze_batch(self, posts):
        self.calls.append(("batch", list(posts)))
        index = sum(1 for kind, _ in self.calls if kind == "batch") - 1
        if index in self.fail_batches:
            raise TransportError("Server responded with status 502.", status_code=502)
        if index in self.garbage_batches:
            return "Sorry, I can't do that."
        return batch_reply(posts)

    def analyze_post(self, post):
        self.calls.append(("post", post))
        remaining = self.post_failures.get(post, 0)
        if remaining:
            self.post_failures[post] = remaining - 1
            raise TransportError("Server responded with status 500.", status_code=500)
        return json.dumps({"sentiment": "negative", "justification": "ok"})

    def generate_report(self, report_data):
        self.calls.append(("report", report_data))
        if self.report is None:
            raise TransportError("Server responded with status 500.", status_code=500)
        return self.report


@pytest.mark.parametrize("n,size", [(0, 25), (1, 25), (25, 25), (26, 25), (60, 7), (5, 1)])
def test_make_batches_partitions(n, size):
    posts = [f"p{i}" for i in range(n)]
    batches = make_batches(posts, size)
    assert len(batches) == math.ceil(n / size)
    for i, batch in enumerate(batches):
        assert batch == posts[i * size:min((i + 1) * size, n)]


def test_make_batches_rejects_bad_size():
    with pytest.raises(ValueError):
        make_batches(["a"], 0)


@pytest.mark.asyncio
async def test_empty_input_is_rejected_before_any_call():
    proxy = FakeProxy()
    orchestrator = BatchOrchestrator(proxy)
    with pytest.raises(InputError):
        await orchestrator.run([])
    assert proxy.calls == []


@pytest.mark.asyncio
async def test_sequential_batches_and_incremental_results():
    posts = [f"post {i}" for i in range(60)]
    proxy = FakeProxy()
    events = []
    orchestrator = BatchOrchestrator(proxy, batch_size=25)

    report = await orchestrator.run(
        posts,
        on_progress=lambda message, i, total: events.append(("progress", i, total)),
        on_results=lambda results: events.append(("results", len(results))),
    )

    assert [c[1] for c in proxy.calls] == [posts[0:25], posts[25:50], posts[50:60]]
    assert events == [
        ("progress", 0, 3), ("results", 25),
        ("progress", 1, 3), ("results", 25),
        ("progress", 2, 3), ("results", 10),
    ]
    assert [r.text for r in report.results] == posts
    assert report.tally.Positive == 60
    assert report.batch_count == 3
    assert report.errors == []
    # Insights from one batch describe only that batch.
    assert report.insights is None


@pytest.mark.asyncio
async def test_single_batch_keeps_model_insights():
    report = await BatchOrchestrator(FakeProxy()).run(["a", "b"])
    assert report.insights.insights_list == ["1", "2", "3"]


@pytest.mark.asyncio
async def test_failed_batches_become_placeholders_and_run_continues():
    posts = [f"post {i}" for i in range(10)]
    proxy = FakeProxy(fail_batches={0}, garbage_batches={2})
    report = await BatchOrchestrator(proxy, batch_size=3).run(posts)

    assert len(proxy.calls) == 4
    assert len(report.results) == len(posts)
    assert [r.text for r in report.results] == posts
    assert all(r.sentiment for r in report.results)
    assert report.failed_count == 6
    assert report.analyzed_count == 4
    assert len(report.errors) == 2
    assert report.errors[0].startswith("Analysis failed on batch 1")
    assert report.results[0].justification == report.errors[0]


@pytest.mark.asyncio
async def test_posts_are_capped():
    posts = [f"post {i}" for i in range(12)]
    proxy = FakeProxy()
    report = await BatchOrchestrator(proxy, batch_size=5, max_posts=8).run(posts)
    assert report.truncated
    assert len(report.results) == 8
    assert sum(len(c[1]) for c in proxy.calls) == 8


@pytest.mark.asyncio
async def test_per_post_mode_retries_once():
    proxy = FakeProxy(post_failures={"flaky": 1, "broken": 5})
    orchestrator = BatchOrchestrator(proxy, mode="per_post", attempts=2)
    report = await orchestrator.run(["fine", "flaky", "broken"])

    assert [c[1] for c in proxy.calls] == ["fine", "flaky", "flaky", "broken", "broken"]
    assert [r.sentiment for r in report.results] == ["Negative", "Negative", "Failed"]
    assert report.failed_count == 1
    assert len(report.errors) == 1
    assert "after 2 attempt(s)" in report.errors[0]


@pytest.mark.asyncio
async def test_model_insights_requested_after_run():
    report_text = '{"summary": "What these results mean... mostly positive.", "insights_list": ["x", "y", "z"]}'
    proxy = FakeProxy(report=report_text)
    posts = [f"post {i}" for i in range(4)]
    report = await BatchOrchestrator(proxy, batch_size=2, model_insights=True).run(posts)

    kind, data = proxy.calls[-1]
    assert kind == "report"
    assert data["sentiment_counts"]["Positive"] == 4
    assert data["positive_percent"] == 100.0
    assert report.insights.insights_list == ["x", "y", "z"]


@pytest.mark.asyncio
async def test_model_insights_failure_is_not_fatal():
    proxy = FakeProxy(report=None)
    report = await BatchOrchestrator(proxy, batch_size=1, model_insights=True).run(["a", "b"])
    assert report.analyzed_count == 2
    assert report.insights is None
    assert report.errors[-1].startswith("Could not generate AI insights")
    assert "What these results mean" in report.interpretation


@pytest.mark.asyncio
async def test_session_is_reset_between_runs():
    session = AnalysisSession()
    orchestrator = BatchOrchestrator(FakeProxy(fail_batches={0}), session=session)
    await orchestrator.run(["a"])
    assert session.errors

    orchestrator.client = FakeProxy()
    await orchestrator.run(["b", "c"])
    assert session.posts == ["b", "c"]
    assert session.errors == []
    assert session.is_complete


def test_unknown_mode_rejected():
    with pytest.raises(ValueError):
        BatchOrchestrator(FakeProxy(), mode="parallel")


@pytest.mark.asyncio
async def test_uploaded_csv_posts_reach_the_proxy_unchanged():
    uploaded = read_upload("posts.csv", b'"line one\nline two"\n"para one\n\npara two"\nthird\n')
    posts = resolve_posts(display_text(uploaded), uploaded)
    proxy = FakeProxy()
    report = await BatchOrchestrator(proxy).run(posts)

    assert proxy.calls == [("batch", ["line one\nline two", "para one\n\npara two", "third"])]
    assert [r.text for r in report.results] == uploaded
