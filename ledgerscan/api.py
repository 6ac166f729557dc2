"""
FastAPI service for statement extraction.
"""
from fastapi import FastAPI, File, Form, HTTPException, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from functools import lru_cache
from pathlib import Path
from typing import Optional
import logging
import shutil
import tempfile

from . import __version__
from .core.config import load_settings
from .core.loader import read_export_rows, read_pdf_rows, read_text_rows
from .core.normalize import source_name
from .core.runner import StatementRunner, collect_output

logger = logging.getLogger(__name__)

app = FastAPI(title="ledgerscan", version=__version__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173", "http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@lru_cache(maxsize=1)
def get_runner() -> StatementRunner:
    """Runner built once from the default settings locations."""
    return StatementRunner.from_settings(load_settings())


def _option(request: Request, form_value: Optional[str], name: str) -> Optional[str]:
    return form_value if form_value is not None else request.query_params.get(name)


def _flag(value: Optional[str]) -> bool:
    return value is not None and value.strip().lower() in ("1", "true", "yes", "on")


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "ok"}


@app.get("/formats")
async def list_formats():
    """List the registered statement formats."""
    registry = get_runner().registry
    return {
        "formats": [
            {"id": format_id, "strategy": registry.get(format_id).strategy, "bank": registry.get(format_id).bank}
            for format_id in registry.list_formats()
        ]
    }


@app.post("/extract")
async def extract(
    request: Request,
    file: UploadFile = File(...),
    statement_type: Optional[str] = Form(None),
    statement_only: Optional[str] = Form(None),
    transaction_only: Optional[str] = Form(None),
    text_only: Optional[str] = Form(None),
):
    """
    Extract statements from an uploaded PDF, text or CSV export.

    Options may be sent as form fields or query parameters.

    Returns:
        The shaped statement, a list when the document holds several
        accounts, or an empty object when nothing was found
    """
    filename = file.filename or "upload.pdf"
    suffix = Path(filename).suffix.lower() or ".pdf"
    statement_type = _option(request, statement_type, "statement_type")
    statement_only = _flag(_option(request, statement_only, "statement_only"))
    transaction_only = _flag(_option(request, transaction_only, "transaction_only"))
    text_only = _flag(_option(request, text_only, "text_only"))

    with tempfile.TemporaryDirectory() as tmp_dir:
        tmp_path = Path(tmp_dir) / f"upload{suffix}"
        with open(tmp_path, "wb") as tmp_file:
            shutil.copyfileobj(file.file, tmp_file)

        logger.info(f"Processing upload: {filename}")
        try:
            if suffix == ".csv":
                records = read_export_rows(tmp_path)
                text = tmp_path.read_text(encoding="utf-8")
            else:
                rows = read_text_rows(tmp_path) if suffix == ".txt" else read_pdf_rows(tmp_path)
                text = "\n".join(rows)
        except Exception as e:
            logger.error(f"Could not read upload {filename}: {e}")
            raise HTTPException(status_code=400, detail=f"Could not read file: {e}")

    if text_only:
        return {"filename": filename, "text": text}

    runner = get_runner()
    source = source_name(filename)
    try:
        if suffix == ".csv":
            statements = runner.process_export(source, records)
        else:
            statements = runner.process_rows(source, rows, statement_type)
    except Exception as e:
        logger.error(f"Error extracting {filename}: {e}")
        raise HTTPException(status_code=500, detail=f"Error extracting statement: {e}")

    shaped = collect_output(statements, transaction_only, statement_only)
    if transaction_only:
        return shaped
    if not shaped:
        return {}
    return shaped[0] if len(shaped) == 1 else shaped


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
