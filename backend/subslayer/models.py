"""Pydantic models shared by the ingestion, analysis and API layers.

Field names are snake_case in Python; the wire format (JSON in and out of the
API, knowledge-base override files) uses the camelCase aliases.
"""

from __future__ import annotations

import math
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

Category = Literal["Entertainment", "Software", "Utilities", "Lifestyle", "Other"]
CancellationMethod = Literal["Online", "Phone", "Email", "Letter"]
Frequency = Literal["Monthly", "Yearly", "Weekly", "Unknown"]
Status = Literal["Active", "Cancelled", "Unknown"]


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)


class Transaction(_Frozen):
    """One observed monetary movement; negative amount = money out."""

    id: str
    date: str
    description: str
    original_description: str = Field(alias="originalDescription")
    amount: float = 0.0
    currency: Optional[str] = None

    @field_validator("amount", mode="before")
    @classmethod
    def _coerce_amount(cls, v):
        try:
            v = float(v)
        except (TypeError, ValueError):
            return 0.0
        return v if math.isfinite(v) else 0.0


class TextFragment(_Frozen):
    """A positioned run of text on a PDF page (origin bottom-left)."""

    text: str
    x: float
    y: float


class ServiceAlternative(_Frozen):
    name: str
    price: str
    savings: str


class ServiceKnowledge(_Frozen):
    """A pre-authored record describing a recognized subscription service."""

    id: str
    name: str
    category: Category
    logo: str = ""
    description: str = ""
    url: str = ""
    cancellation_url: str = Field(default="", alias="cancellationUrl")
    cancellation_method: CancellationMethod = Field(
        default="Online", alias="cancellationMethod"
    )
    steps: List[str] = Field(default_factory=list)
    keywords: List[str] = Field(min_length=1)
    downgrade_options: Optional[List[ServiceAlternative]] = Field(
        default=None, alias="downgradeOptions"
    )

    @field_validator("keywords")
    @classmethod
    def _lowercase_keywords(cls, v: List[str]) -> List[str]:
        kws = [k.strip().lower() for k in v if k and k.strip()]
        if not kws:
            raise ValueError("at least one non-blank keyword is required")
        return kws


class Subscription(_Frozen):
    """A detected recurring-charge group."""

    id: str
    name: str
    amount: float
    currency: str
    frequency: Frequency = "Monthly"
    last_payment_date: str = Field(alias="lastPaymentDate")
    category: Category = "Other"
    status: Status = "Active"
    confidence: float
    logo: Optional[str] = None
    cancellation_url: Optional[str] = Field(default=None, alias="cancellationUrl")
    knowledge_id: Optional[str] = Field(default=None, alias="knowledgeId")


class AnalysisResult(_Frozen):
    subscriptions: List[Subscription] = Field(default_factory=list)
    total_monthly_spend: float = Field(default=0.0, alias="totalMonthlySpend")
    yearly_projection: float = Field(default=0.0, alias="yearlyProjection")
    processed_transactions: int = Field(default=0, alias="processedTransactions")
    currency: str = "USD"


__all__ = [
    "Category",
    "CancellationMethod",
    "Frequency",
    "Status",
    "Transaction",
    "TextFragment",
    "ServiceAlternative",
    "ServiceKnowledge",
    "Subscription",
    "AnalysisResult",
]
