"""
Turn pasted text or uploaded files into an ordered list of posts.
"""
import csv
import io
import logging
import re
from typing import List, Optional, Tuple

from app.core.exceptions import InputError

logger = logging.getLogger(__name__)

BLANK_LINE_RE = re.compile(r"\n[^\S\n]*\n")
BLANK_LINES_SPLIT_RE = re.compile(r"\n\s*\n+")


def split_posts(raw_text: str) -> List[str]:
    """
    Split raw text into trimmed, non-empty posts.

    When the text contains at least one blank line, posts are separated by
    blank lines (so a post may span several lines). Otherwise every line is
    its own post.

    Re-splitting ``"\\n\\n".join(posts)`` gives back ``posts``, except when
    the result is a single post spanning several lines: without a blank line
    left in the text, that post is split line by line.
    """
    if not raw_text:
        return []

    text = raw_text.replace("\r\n", "\n").replace("\r", "\n")
    if BLANK_LINE_RE.search(text):
        chunks = BLANK_LINES_SPLIT_RE.split(text)
    else:
        chunks = text.split("\n")
    return [c.strip() for c in chunks if c.strip()]


def parse_csv_posts(raw_text: str) -> List[str]:
    """Take the first column of every non-empty CSV row."""
    posts: List[str] = []
    reader = csv.reader(io.StringIO(raw_text))
    try:
        for row in reader:
            if not row or row[0] is None:
                continue
            value = str(row[0]).strip()
            if value:
                posts.append(value)
    except csv.Error as e:
        raise InputError(f"Error parsing CSV file: {e}") from e
    return posts


def read_upload(filename: str, content: bytes) -> List[str]:
    """Decode an uploaded .txt/.csv file and extract its posts."""
    try:
        raw_text = content.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise InputError(
            "Error reading file. Please ensure it's a valid .txt or .csv file encoded in UTF-8."
        ) from e

    if filename.lower().endswith(".csv"):
        posts = parse_csv_posts(raw_text)
    else:
        posts = split_posts(raw_text)
    logger.info(f"Read {len(posts)} posts from {filename}")
    return posts


def display_text(posts: List[str]) -> str:
    """Text shown in the input box for posts that came from a file."""
    return "\n\n".join(posts)


def resolve_posts(raw_text: str, uploaded_posts: Optional[List[str]] = None) -> List[str]:
    """
    Posts to submit for the current input box contents.

    Posts parsed from an upload are used as-is while the box still shows
    them unedited, so CSV cells spanning several lines stay one post.
    Anything else is split from the text.
    """
    if uploaded_posts is not None and raw_text == display_text(uploaded_posts):
        return list(uploaded_posts)
    return split_posts(raw_text)


def cap_posts(posts: List[str], max_posts: int) -> Tuple[List[str], bool]:
    """Keep at most ``max_posts`` posts; the flag tells whether any were dropped."""
    if len(posts) <= max_posts:
        return list(posts), False
    logger.warning(f"Received {len(posts)} posts, using the first {max_posts}")
    return list(posts[:max_posts]), True


def post_count_message(count: int, max_posts: int) -> str:
    message = f"Posts detected: {count}"
    if count > max_posts:
        message += f" (Warning: Using first {max_posts} posts due to limit.)"
    return message
