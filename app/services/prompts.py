"""
Prompt templates sent to the language model by the proxy.
"""
import json
from typing import Any, Dict, List

POST_SEPARATOR = "\n-----\n"

BATCH_PROMPT = """You are a helpful, expert social media research assistant for a university professor.
Your task is to analyze a series of social media posts and provide a complete report in a single, clean JSON object.

The final JSON object MUST have two top-level keys: "post_analysis" and "strategic_insights".

1.  The "post_analysis" key must contain an array with exactly {count} objects, one per post, in the same order as the posts below. Each object has the following three keys:
    - "text": The original, unmodified post text.
    - "sentiment": Your classification, which must be one of "Positive", "Negative", "Neutral", or "Mixed". If a post cannot be analyzed, use "Failed" and explain why in the justification.
    - "justification": A brief, one-sentence explanation for your sentiment classification.

2.  The "strategic_insights" key must contain an object with two keys:
    - "summary": A paragraph starting with "What these results mean...". This should be a concise summary of the overall sentiment distribution.
    - "insights_list": An array of exactly three strings. Each string should be a distinct, actionable strategic insight for a public relations or advertising professional, based on the analysis.

The posts are separated by lines of dashes. Here are the posts to analyze:
{posts}
"""

GENERIC_PROMPT = """You are a social media text analysis expert. Analyze the following {count} posts for {analysis_type}. Provide the results as a single JSON object.

Posts:
{posts}
"""

POST_PROMPT = """You are an expert social media research assistant.
Classify the sentiment of the single social media post below.

Respond with one JSON object with exactly two keys:
- "sentiment": one of "Positive", "Negative", "Neutral", or "Mixed". If the post cannot be analyzed, use "Failed".
- "justification": a brief, one-sentence explanation for your classification.

Post:
{post}
"""

JUSTIFY_PROMPT = """You are an expert social media research assistant.
The social media post below has been classified as "{sentiment}".

Respond with one JSON object with exactly two keys:
- "sentiment": "{sentiment}"
- "justification": a brief, one-sentence explanation of why the post carries this sentiment.

Post:
{post}
"""

REPORT_PROMPT = """You are an expert social media research assistant writing for public relations and advertising professionals.
Below is the aggregated result of a sentiment analysis over a set of social media posts, as JSON.

Write a report as a single JSON object with two keys:
- "summary": A paragraph starting with "What these results mean...". Summarize the overall sentiment distribution.
- "insights_list": An array of exactly three strings, each a distinct, actionable strategic insight based on the data.

Data:
{report_data}
"""


def build_batch_prompt(posts: List[str]) -> str:
    return BATCH_PROMPT.format(count=len(posts), posts=POST_SEPARATOR.join(posts))


def build_generic_prompt(posts: List[str], analysis_type: str) -> str:
    return GENERIC_PROMPT.format(
        count=len(posts), analysis_type=analysis_type, posts="\n".join(posts))


def build_post_prompt(post: str) -> str:
    return POST_PROMPT.format(post=post)


def build_justification_prompt(post: str, sentiment: str) -> str:
    return JUSTIFY_PROMPT.format(post=post, sentiment=sentiment)


def build_report_prompt(report_data: Dict[str, Any]) -> str:
    return REPORT_PROMPT.format(report_data=json.dumps(report_data, ensure_ascii=False, indent=2))
