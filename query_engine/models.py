"""
Query Engine Data Model
=======================

Pydantic models shared by every stage of the engine.

Record Conventions
------------------
- A *record* is an open mapping (``Dict[str, Any]``) as delivered by a provider;
  field names follow the provider (camelCase FMP names such as ``companyName``,
  ``mktCap``, ``dividendYield``).
- A *processed record* is a merged, query-relevant row. It always carries
  ``symbol`` when one is known.

- **Ratio Values** (yields, growth rates, margins, payout ratio) in processed records:
  - Unit: Percentage with 2 decimals (NOT decimal)
  - Example: 3.1% = 3.1, not 0.031

Lifecycles
----------
Query, EndpointDescriptor and RawEndpointResult live for one request.
QueryResult is the only object handed to callers.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

Record = Dict[str, Any]

# Endpoint names of results whose ratio fields are already percentages
FALLBACK_PREFIX = "fallback_"
INDEX_DATA_SUFFIX = "_index_data"


class IntentKind(str, Enum):
    """Kinds of intent a prompt can carry."""
    SECTOR = "sector"
    INDEX = "index"
    STATEMENT_TYPE = "statement_type"
    METRIC_CATEGORY = "metric_category"


class Intent(BaseModel):
    """One classified intent, e.g. (SECTOR, 'healthcare') or (METRIC_CATEGORY, 'dividend')."""
    model_config = ConfigDict(frozen=True)

    kind: IntentKind
    value: str


class Query(BaseModel):
    """A prompt plus everything the interpreter derived from it."""
    model_config = ConfigDict(frozen=True)

    prompt: str
    detected_sectors: List[str] = Field(default_factory=list, description="Sector tags in table order")
    detected_index: Optional[str] = Field(None, description="Canonical index name, first match wins")
    potential_symbols: List[str] = Field(default_factory=list, description="Ticker candidates, de-duplicated")
    is_company_specific: bool = False
    intents: List[Intent] = Field(default_factory=list)

    @property
    def lowered(self) -> str:
        return self.prompt.lower()

    def mentions(self, terms) -> bool:
        """True if any of `terms` is a substring of the case-folded prompt."""
        text = self.lowered
        return any(term in text for term in terms)

    def has_intent(self, kind: IntentKind, value: Optional[str] = None) -> bool:
        return any(i.kind == kind and (value is None or i.value == value) for i in self.intents)


class EndpointDescriptor(BaseModel):
    """
    Named reference to one provider call.

    `url_template` is the path (with query string) relative to the provider base URL;
    `name` locates this source's payload in later stages.
    """
    model_config = ConfigDict(frozen=True)

    name: str
    url_template: str


class RawEndpointResult(BaseModel):
    """Payload of one descriptor. Present even when the fetch failed (data == [])."""
    endpoint: str
    data: List[Record] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.data

    @property
    def is_synthetic(self) -> bool:
        return self.endpoint.startswith(FALLBACK_PREFIX)

    @property
    def reports_percent(self) -> bool:
        """Built-in datasets and index rows carry yields in percent, providers in fractions."""
        return self.is_synthetic or self.endpoint.endswith(INDEX_DATA_SUFFIX)


class QueryResult(BaseModel):
    """
    The contract exposed to callers.

    Either a successful answer (`data`, `sqlQuery`) or an error with nothing else.
    """
    model_config = ConfigDict(populate_by_name=True)

    data: List[Record] = Field(default_factory=list)
    sql_query: str = Field("", alias="sqlQuery")
    error: Optional[str] = None

    @model_validator(mode="after")
    def _error_excludes_payload(self):
        if self.error is not None and (self.data or self.sql_query):
            raise ValueError("a QueryResult carrying an error must have empty data and sqlQuery")
        return self

    @classmethod
    def success(cls, data: List[Record], sql_query: str) -> "QueryResult":
        return cls(data=data, sql_query=sql_query)

    @classmethod
    def failure(cls, message: str) -> "QueryResult":
        return cls(error=message)

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize with the external field names (data, sqlQuery, error)."""
        return self.model_dump(by_alias=True)


def record_symbol(row: Record) -> Optional[str]:
    """Ticker of a record (``symbol``, else ``ticker``); only non-empty strings count."""
    for key in ("symbol", "ticker"):
        value = row.get(key)
        if isinstance(value, str) and value:
            return value
    return None
