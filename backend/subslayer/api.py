"""FastAPI service exposing statement parsing and subscription detection.

Endpoints:
  POST /parse              (multipart: files=<csv|pdf>...) -> per-file outcomes + transactions
  POST /analyze            (JSON: {"transactions": [...]}) -> AnalysisResult
  POST /parse-and-analyze  (multipart: files=...) -> AnalysisResult
  GET  /services           -> known services
  GET  /services/lookup?q= -> best-matching known service
  GET  /services/{id}      -> one known service
  POST /debug-text         (multipart: file=<pdf>) -> rebuilt rows as text
  GET  /health             -> simple health check

Run (dev): uvicorn subslayer.api:app --reload --port 8000
"""

from __future__ import annotations

import logging
import os
import traceback
from typing import Any, Dict, List, Optional, Tuple

from fastapi import Depends, FastAPI, File, HTTPException, Request, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel

from .analysis import SubscriptionAnalyzer
from .errors import EmptyFileError, StatementParseError, TooManyFilesError
from .ingest import MAX_FILES, FileOutcome, ingest_files, merged_transactions
from .knowledge import KnowledgeBase, default_knowledge_base
from .models import AnalysisResult, ServiceKnowledge, Transaction
from .pdf_parser import debug_dump
from .utils import df_to_records, transactions_to_frame

logging.basicConfig(level=os.getenv("API_LOG_LEVEL", "INFO"))
logger = logging.getLogger("subslayer.api")

MAX_FILE_BYTES = int(os.getenv("MAX_FILE_BYTES", 15 * 1024 * 1024))  # 15MB default
CORS_ORIGINS = [
    o.strip()
    for o in os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",")
    if o.strip()
]


class AnalyzeRequest(BaseModel):
    transactions: List[Transaction]


app = FastAPI(title="Subscription Slayer API", version="0.1.0")
app.add_middleware(GZipMiddleware, minimum_size=1024)
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_knowledge_base() -> KnowledgeBase:
    return default_knowledge_base()


def get_analyzer(kb: KnowledgeBase = Depends(get_knowledge_base)) -> SubscriptionAnalyzer:
    return SubscriptionAnalyzer(kb)


def _debug_enabled(request: Request) -> bool:
    return request.query_params.get("debug") == "1" or os.getenv("API_DEBUG") == "1"


def _error_detail(
    code: str, message: str, request: Request, tb: Optional[str] = None
) -> Dict[str, Any]:
    detail: Dict[str, Any] = {"error": code, "message": message}
    if tb and _debug_enabled(request):
        detail["traceback"] = tb
    return detail


async def _read_upload(file: UploadFile, allow_empty: bool = False) -> bytes:
    """Read an upload in chunks, enforcing MAX_FILE_BYTES."""
    chunks: List[bytes] = []
    total = 0
    chunk_size = 1024 * 64
    while True:
        chunk = await file.read(chunk_size)
        if not chunk:
            break
        total += len(chunk)
        if total > MAX_FILE_BYTES:
            raise HTTPException(
                status_code=413,
                detail=f"File too large (> {MAX_FILE_BYTES // (1024 * 1024)}MB)",
            )
        chunks.append(chunk)
    if total == 0 and not allow_empty:
        raise HTTPException(status_code=400, detail=f"Empty file: {file.filename}")
    return b"".join(chunks)


async def _ingest(request: Request, files: List[UploadFile]) -> List[FileOutcome]:
    if len(files) > MAX_FILES:
        raise HTTPException(
            status_code=400,
            detail=_error_detail(
                TooManyFilesError.code, f"At most {MAX_FILES} files per upload", request
            ),
        )
    payload: List[Tuple[str, bytes]] = []
    for f in files:
        payload.append((f.filename or "upload", await _read_upload(f, allow_empty=True)))
    # single empty files become per-file outcomes
    if not any(data for _, data in payload):
        raise HTTPException(
            status_code=400,
            detail=_error_detail(EmptyFileError.code, "All uploaded files are empty", request),
        )
    try:
        # parsing is CPU bound; keep it off the event loop
        return await run_in_threadpool(ingest_files, payload, MAX_FILES)
    except Exception as e:  # pragma: no cover - per-file errors are caught inside
        tb = traceback.format_exc()
        logger.error("Ingestion failure: %s\n%s", e, tb)
        raise HTTPException(
            status_code=500,
            detail=_error_detail("PARSE_FAILURE", str(e), request, tb),
        ) from e


def _outcome_summary(o: FileOutcome) -> Dict[str, Any]:
    return {
        "fileName": o.filename,
        "transactionCount": len(o.transactions),
        "error": o.error,
        "message": o.message,
    }


@app.get("/")
def root():  # simple root for quick manual test
    return {"service": "subslayer", "status": "ok"}


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.post("/parse")
async def parse_files(request: Request, files: List[UploadFile] = File(...)):
    outcomes = await _ingest(request, files)
    txns = merged_transactions(outcomes)
    df = transactions_to_frame(txns)
    metrics = {
        "transaction_count": int(len(df)),
        "net_amount": float(df["amount"].sum()) if not df.empty else 0.0,
        "currencies": sorted(c for c in df["currency"].dropna().unique()) if not df.empty else [],
    }
    return {
        "files": [_outcome_summary(o) for o in outcomes],
        "metrics": metrics,
        "transactions": df_to_records(df),
    }


@app.post("/analyze", response_model=AnalysisResult)
def analyze(req: AnalyzeRequest, analyzer: SubscriptionAnalyzer = Depends(get_analyzer)):
    return analyzer.analyze(req.transactions)


@app.post("/parse-and-analyze", response_model=AnalysisResult)
async def parse_and_analyze(
    request: Request,
    files: List[UploadFile] = File(...),
    analyzer: SubscriptionAnalyzer = Depends(get_analyzer),
):
    outcomes = await _ingest(request, files)
    txns = merged_transactions(outcomes)
    if not txns:
        failed = {o.filename: o.error for o in outcomes}
        raise HTTPException(
            status_code=422,
            detail={
                "error": "NO_VALID_TRANSACTIONS",
                "message": "No valid transactions found. Please check your file format.",
                "files": failed,
            },
        )
    return analyzer.analyze(txns)


@app.get("/services", response_model=List[ServiceKnowledge])
def list_services(kb: KnowledgeBase = Depends(get_knowledge_base)):
    return list(kb.services)


@app.get("/services/lookup", response_model=ServiceKnowledge)
def lookup_service(q: str, kb: KnowledgeBase = Depends(get_knowledge_base)):
    svc = kb.lookup(q)
    if svc is None:
        raise HTTPException(status_code=404, detail={"message": f"No service matches {q!r}"})
    return svc


@app.get("/services/{service_id}", response_model=ServiceKnowledge)
def get_service(service_id: str, kb: KnowledgeBase = Depends(get_knowledge_base)):
    svc = kb.get(service_id)
    if svc is None:
        raise HTTPException(status_code=404, detail={"message": "Unknown service"})
    return svc


@app.post("/debug-text", response_class=PlainTextResponse)
async def debug_text(request: Request, file: UploadFile = File(...)):
    if not (file.filename or "").lower().endswith(".pdf"):
        raise HTTPException(status_code=400, detail="Only PDF files are supported")
    data = await _read_upload(file)
    try:
        text = await run_in_threadpool(debug_dump, data)
    except StatementParseError as e:
        raise HTTPException(
            status_code=400, detail=_error_detail(e.code, str(e), request)
        ) from e
    return f"File: {file.filename}\n\n{text}"


if __name__ == "__main__":  # pragma: no cover
    import uvicorn

    uvicorn.run("subslayer.api:app", host="0.0.0.0", port=8000, reload=True)
