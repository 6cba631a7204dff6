"""Subscription Slayer backend: bank statement ingestion and subscription detection."""

from .analysis import SubscriptionAnalyzer, analyze_subscriptions
from .csv_ingest import ingest_csv
from .knowledge import KnowledgeBase, default_knowledge_base, lookup_service
from .models import AnalysisResult, ServiceKnowledge, Subscription, Transaction
from .pdf_parser import parse_statement_pdf
from .utils import normalize_amount, normalize_date

__all__ = [
    "SubscriptionAnalyzer",
    "analyze_subscriptions",
    "ingest_csv",
    "parse_statement_pdf",
    "KnowledgeBase",
    "default_knowledge_base",
    "lookup_service",
    "normalize_amount",
    "normalize_date",
    "Transaction",
    "Subscription",
    "ServiceKnowledge",
    "AnalysisResult",
]
