from unittest.mock import MagicMock

import pytest
import requests

from app.core.exceptions import TransportError
from app.services.proxy_client import ProxyClient


def make_session(status=200, text="", json_body=None):
    response = MagicMock()
    response.ok = 200 <= status < 300
    response.status_code = status
    response.text = text
    if json_body is None:
        response.json.side_effect = ValueError("not json")
    else:
        response.json.return_value = json_body
    session = MagicMock()
    session.headers = {}
    session.post.return_value = response
    return session


def test_analyze_batch_posts_posts_and_returns_text():
    session = make_session(text='{"post_analysis": []}')
    client = ProxyClient("http://proxy:8080/", timeout=12, session=session)

    assert client.analyze_batch(["a", "b"]) == '{"post_analysis": []}'
    session.post.assert_called_once_with(
        "http://proxy:8080/api/v1/analyze", json={"posts": ["a", "b"]}, timeout=12)
    assert session.headers["User-Agent"] == "SentimentAnalyzer/1.0"


def test_task_bodies():
    session = make_session(text="{}")
    client = ProxyClient("http://proxy", session=session)

    client.analyze_post("hi")
    assert session.post.call_args.kwargs["json"] == {"task": "analyze_post", "post": "hi"}

    client.generate_report({"analyzed_posts": 1})
    assert session.post.call_args.kwargs["json"] == {
        "task": "generate_report", "reportData": {"analyzed_posts": 1}}


def test_non_2xx_raises_with_proxy_error_message():
    session = make_session(status=500, json_body={"error": "API key not found in environment."})
    client = ProxyClient("http://proxy", session=session)

    with pytest.raises(TransportError) as exc_info:
        client.analyze_batch(["a"])
    assert exc_info.value.status_code == 500
    assert "status 500" in str(exc_info.value)
    assert "API key not found" in str(exc_info.value)


def test_non_json_error_body():
    session = make_session(status=502, text="<html>Bad gateway</html>")
    client = ProxyClient("http://proxy", session=session)
    with pytest.raises(TransportError) as exc_info:
        client.analyze_post("a")
    assert exc_info.value.status_code == 502


def test_connection_failure_is_transport_error():
    session = make_session()
    session.post.side_effect = requests.ConnectionError("refused")
    client = ProxyClient("http://proxy", session=session)
    with pytest.raises(TransportError) as exc_info:
        client.analyze_batch(["a"])
    assert exc_info.value.status_code is None


def test_health():
    session = make_session()
    session.get.return_value = MagicMock(ok=True)
    assert ProxyClient("http://proxy", session=session).health()

    session.get.side_effect = requests.ConnectionError("refused")
    assert not ProxyClient("http://proxy", session=session).health()
