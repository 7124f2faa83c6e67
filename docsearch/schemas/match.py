"""
API Schemas — Request and Response Models

Pydantic models for the docsearch API.
"""

from __future__ import annotations

from typing import Optional
from pydantic import BaseModel, Field, model_validator


# ============================================================
# DOCUMENT INPUT
# ============================================================

class DocumentInput(BaseModel):
    """A document given either as lines or as raw text (split on newlines)."""
    lines: Optional[list[str]] = Field(None, max_length=200_000,
                                       description="The document, one entry per line.")
    text: Optional[str] = Field(None, max_length=5_000_000,
                                description="The document as raw text.")

    @model_validator(mode="after")
    def check_one_of_lines_or_text(self):
        if (self.lines is None) == (self.text is None):
            raise ValueError("provide exactly one of 'lines' or 'text'")
        return self

    def get_lines(self) -> list[str]:
        if self.lines is not None:
            return self.lines
        return self.text.splitlines()


# ============================================================
# COMPILE
# ============================================================

class CompileRequest(BaseModel):
    """POST /compile request body."""
    source: str = Field(..., min_length=1, max_length=100_000,
                        description="Rule expression in the pattern DSL.")

    model_config = {"json_schema_extra": {"examples": [
        {"source": 'all { any { "^BER.TA ACARA$"i }, sequence { "^A", "^B" } }'},
    ]}}


class ErrorDetail(BaseModel):
    message: str
    line: Optional[int] = None
    column: Optional[int] = None


class CompileResponse(BaseModel):
    """POST /compile response body."""
    valid: bool
    error: Optional[ErrorDetail] = None


# ============================================================
# EVALUATE / CLASSIFY
# ============================================================

class EvaluateRequest(DocumentInput):
    """POST /evaluate request body."""
    source: str = Field(..., min_length=1, max_length=100_000)


class EvaluateResponse(BaseModel):
    """POST /evaluate response body."""
    score: int
    lines_count: int


class ClassifyRequest(DocumentInput):
    """POST /classify request body."""


class RuleScoreResponse(BaseModel):
    rule_id: str
    name: str
    score: int
    threshold: int
    matched: bool


class ClassifyResponse(BaseModel):
    """POST /classify response body."""
    lines_count: int
    best_match: Optional[str] = None
    results: list[RuleScoreResponse]


# ============================================================
# RULES / HEALTH
# ============================================================

class RuleResponse(BaseModel):
    id: str
    name: str
    description: str
    threshold: int
    source: str


class RulesResponse(BaseModel):
    total: int
    rules: list[RuleResponse]


class HealthResponse(BaseModel):
    status: str
    version: str
    rules_loaded: int
    workers: int
    regex_cache: dict
