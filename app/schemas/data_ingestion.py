from pydantic import BaseModel, Field, model_validator
from typing import Any, Dict, List, Literal, Optional


class ProxyRequest(BaseModel):
    """
    Body accepted by the proxy endpoint.

    Supported shapes:
        {"posts": [...]}                                   batch analysis
        {"posts": [...], "analysisType": "..."}            free-form analysis
        {"task": "analyze_post", "post": "..."}            single post
        {"task": "justify_post", "post": "...", "sentiment": "..."}
        {"task": "generate_report", "reportData": {...}}
    """

    posts: Optional[List[str]] = None
    analysisType: Optional[str] = None
    task: Optional[Literal["analyze_post", "justify_post", "generate_report"]] = None
    post: Optional[str] = None
    sentiment: Optional[str] = None
    reportData: Optional[Dict[str, Any]] = None

    @model_validator(mode="after")
    def check_shape(self) -> "ProxyRequest":
        if self.task is None:
            if not self.posts:
                raise ValueError("Request must contain a non-empty 'posts' list or a 'task'.")
            return self

        if self.task in ("analyze_post", "justify_post") and not (self.post or "").strip():
            raise ValueError(f"Task '{self.task}' requires a non-empty 'post'.")
        if self.task == "justify_post" and not (self.sentiment or "").strip():
            raise ValueError("Task 'justify_post' requires a 'sentiment'.")
        if self.task == "generate_report" and self.reportData is None:
            raise ValueError("Task 'generate_report' requires 'reportData'.")
        return self


class ErrorResponse(BaseModel):
    error: str = Field(..., description="Human readable failure message")
