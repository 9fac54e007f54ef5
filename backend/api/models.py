"""
Pydantic models for API request/response validation.
"""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field


# ============================================================================
# Requests
# ============================================================================

class ExtractRequest(BaseModel):
    """Tagging-only request (live highlighting while typing)"""
    text: str = Field(..., description="Text typed so far")
    user_id: Optional[str] = Field(default=None, description="Current user, resolves pronouns")


class QueryRequest(BaseModel):
    """Full pipeline request"""
    text: str = Field(..., description="User question text")
    user_id: Optional[str] = Field(default=None, description="Current user, resolves pronouns")
    timeout_seconds: Optional[float] = Field(default=None, gt=0, description="Overall deadline override")


class SuggestionsRequest(BaseModel):
    query: str = Field(..., description="Partial value to complete")
    category: Optional[Literal['product', 'customer', 'user']] = None
    limit: int = Field(default=10, ge=1, le=50)


# ============================================================================
# Responses
# ============================================================================

class EntityModel(BaseModel):
    """One tagged span"""
    text: str
    kind: Literal['TableEntity', 'DomainValue', 'Pronoun', 'Temporal',
                  'NumericFilter', 'StatusFilter', 'LocationFilter']
    start: int
    end: int
    confidence: float
    table: Optional[str] = None
    canonical_value: Any = None
    category: Optional[str] = None
    record_id: Any = None
    is_filter_candidate: bool = True
    alternatives: List[str] = []
    hover_text: str = ""


class ExtractResponse(BaseModel):
    entities: List[EntityModel]


class PredicateModel(BaseModel):
    table: str
    column: str
    operator: Literal['equals', 'contains', 'gt', 'lt', 'gte', 'lte', 'range']
    value: Any
    value2: Any = None
    group: int = 0
    source_text: str = ""


class ProcessQueryResponse(BaseModel):
    """Full pipeline result"""
    question: str
    entities: List[EntityModel]
    target_tables: List[str]
    routing: Dict[str, str]
    predicates: Dict[str, List[PredicateModel]]
    rows_by_table: Dict[str, List[Dict[str, Any]]]
    merged_rows: List[Dict[str, Any]]
    counts: Dict[str, int]
    total_rows: int
    summary_text: str
    applied_filters: List[str]
    homogeneity: float
    errors_by_table: Dict[str, str]
    error: Optional[str] = None
    metadata: Dict[str, Any] = {}


class SuggestionModel(BaseModel):
    value: str
    category: str
    table: str
    record_id: Any = None
    score: float


class SuggestionsResponse(BaseModel):
    suggestions: List[SuggestionModel]


class CacheRefreshResponse(BaseModel):
    status: Literal['ok', 'partial']
    values_by_category: Dict[str, int]
    errors: Dict[str, str] = {}
