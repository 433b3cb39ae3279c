"""Flatten notebook-style submissions into a single text blob for prompting."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

import httpx
from pydantic import BaseModel
from pydantic import ValidationError as SchemaError

from autograde.errors import NoContentError

LOG = logging.getLogger(__name__)

BLOCK_SEPARATOR = "\n\n---\n\n"

TextLike = Union[str, List[str]]


class CellOutput(BaseModel):
    """One output entry of a notebook cell."""
    output_type: Optional[str] = None
    text: Optional[TextLike] = None
    data: Optional[Dict[str, Any]] = None
    ename: Optional[str] = None
    evalue: Optional[str] = None


class NotebookCell(BaseModel):
    cell_type: str
    source: Optional[TextLike] = None
    outputs: Optional[List[CellOutput]] = None
    execution_count: Optional[int] = None

    @property
    def was_run(self) -> bool:
        return bool(self.outputs) or self.execution_count is not None


class NotebookDocument(BaseModel):
    """Minimal schema of an .ipynb document: just the cell sequence."""
    cells: List[NotebookCell]


@dataclass(frozen=True)
class StructuredNotebook:
    cells: List[NotebookCell]


@dataclass(frozen=True)
class PlainText:
    text: str


ParsedSubmission = Union[StructuredNotebook, PlainText]


@dataclass(frozen=True)
class FlattenedSubmission:
    """Prompt-ready text plus execution statistics for notebooks."""
    text: str
    total_code_cells: int = 0
    run_code_cells: int = 0

    @property
    def has_unrun_cells(self) -> bool:
        return self.run_code_cells < self.total_code_cells


async def fetch_text(file_url: str, client: httpx.AsyncClient) -> Optional[str]:
    """Fetch a file body as text. Failures are logged and yield None."""
    try:
        response = await client.get(file_url, follow_redirects=True)
        response.raise_for_status()
    except httpx.HTTPError as e:
        LOG.warning(f"Failed to fetch submission file {file_url}: {e}")
        return None
    return response.text


async def resolve_submission_text(content: Optional[str],
                                  file_url: Optional[str],
                                  client: httpx.AsyncClient) -> str:
    """
    Return the text to grade: inline content, or the body of the uploaded file.

    Raises:
        NoContentError: If neither source yields any text
    """
    text = content
    if not text and file_url:
        text = await fetch_text(file_url, client)
    if not text:
        raise NoContentError("No submission content available to grade")
    return text


def parse_notebook(text: str) -> ParsedSubmission:
    """Parse text as a notebook; anything that is not one is plain text."""
    try:
        document = NotebookDocument.model_validate_json(text)
    except SchemaError:
        return PlainText(text)
    return StructuredNotebook(document.cells)


def _join(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, list):
        return "".join(str(part) for part in value)
    return str(value)


def _render_output(output: CellOutput) -> str:
    if output.output_type == "error" or output.ename:
        return f"[Error: {output.ename}: {output.evalue}]"
    if output.text:
        return _join(output.text)
    if output.data and "text/plain" in output.data:
        return _join(output.data["text/plain"])
    return ""


def render_cell(index: int, cell: NotebookCell) -> str:
    """Render one cell as a labeled block. ``index`` is 1-based."""
    block = f"[Cell {index} - {cell.cell_type}]\n{_join(cell.source)}"
    outputs = [text for text in (_render_output(o) for o in cell.outputs or []) if text]
    if outputs:
        block += "\n[Output]\n" + "\n".join(outputs)
    return block


def flatten_notebook(text: str) -> FlattenedSubmission:
    """
    Convert a submission into prompt text.

    Notebooks become one labeled block per cell, in order; anything else is
    returned verbatim. No length limit is applied here.
    """
    parsed = parse_notebook(text)
    if isinstance(parsed, PlainText):
        return FlattenedSubmission(text=parsed.text)

    code_cells = [cell for cell in parsed.cells if cell.cell_type == "code"]
    blocks = [render_cell(i, cell) for i, cell in enumerate(parsed.cells, start=1)]
    return FlattenedSubmission(
        text=BLOCK_SEPARATOR.join(blocks),
        total_code_cells=len(code_cells),
        run_code_cells=sum(1 for cell in code_cells if cell.was_run),
    )
