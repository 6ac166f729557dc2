"""
Document readers: PDF text rows with pdfplumber, plain text rows and
tabular exports with pandas.
"""
import re
import pdfplumber
import pandas as pd
from pathlib import Path
from typing import IO, List, Union
import logging

logger = logging.getLogger(__name__)

EXPORT_MIN_COLUMNS = 17

LIGATURES = {
    'ﬁ': 'fi',
    'ﬂ': 'fl',
    'ﬀ': 'ff',
    'ﬃ': 'ffi',
    'ﬄ': 'ffl',
    'ﬆ': 'st',
    'ﬅ': 'st'
}


class Word:
    """Represents a word with position information."""
    def __init__(self, text: str, x0: float, x1: float, top: float, bottom: float):
        self.text = text
        self.x0 = x0
        self.x1 = x1
        self.top = top
        self.bottom = bottom

    def __repr__(self):
        return f"Word('{self.text}', x0={self.x0:.1f}, top={self.top:.1f})"


class PageData:
    """Represents a page with extracted words."""
    def __init__(self, page_num: int, words: List[Word]):
        self.page_num = page_num
        self.words = words

    def rows(self, y_tolerance: float = 3.0, indent: float = 15.0) -> List[str]:
        """
        Group words into visual lines, top to bottom.

        Lines starting more than `indent` points right of the page's left
        text margin keep a leading indent so continuation lines stay
        recognisable.
        """
        if not self.words:
            return []

        lines: List[List[Word]] = []
        for word in sorted(self.words, key=lambda w: (w.top, w.x0)):
            if lines and abs(lines[-1][0].top - word.top) <= y_tolerance:
                lines[-1].append(word)
            else:
                lines.append([word])

        margin = min(word.x0 for word in self.words)
        rows = []
        for line in lines:
            line.sort(key=lambda w: w.x0)
            text = " ".join(word.text for word in line)
            if line[0].x0 - margin > indent:
                text = "   " + text
            rows.append(text)
        return rows


class PDFLoader:
    """Handles PDF loading and row extraction."""

    def __init__(self, pdf_path: Union[Path, IO[bytes]]):
        self.pdf_path = pdf_path
        self._pdf = None
        self._pages: List[PageData] = []

    def load(self) -> List[PageData]:
        """Load PDF and extract words from all pages."""
        if self._pages:
            return self._pages

        try:
            self._pdf = pdfplumber.open(self.pdf_path)
            logger.info(f"Loaded PDF with {len(self._pdf.pages)} pages")

            for i, page in enumerate(self._pdf.pages, 1):
                words_data = page.extract_words(
                    x_tolerance=1,
                    y_tolerance=2,
                    keep_blank_chars=False,
                    use_text_flow=True
                )

                words = []
                for word_data in words_data:
                    text = self._normalize_text(word_data.get('text', ''))
                    if text:
                        words.append(Word(
                            text=text,
                            x0=word_data.get('x0', 0),
                            x1=word_data.get('x1', 0),
                            top=word_data.get('top', 0),
                            bottom=word_data.get('bottom', 0)
                        ))

                self._pages.append(PageData(page_num=i, words=words))
                logger.debug(f"Page {i}: {len(words)} words extracted")

            return self._pages

        except Exception as e:
            logger.error(f"Error loading PDF: {e}")
            raise

    def rows(self) -> List[str]:
        """Text rows of every page, in reading order."""
        rows = []
        for page in self.load():
            rows.extend(page.rows())
        return rows

    def _normalize_text(self, text: str) -> str:
        """Normalize text by handling ligatures and multiple spaces."""
        for ligature, replacement in LIGATURES.items():
            text = text.replace(ligature, replacement)
        return re.sub(r'\s+', ' ', text).strip()

    def close(self):
        """Close the PDF file."""
        if self._pdf:
            self._pdf.close()
            self._pdf = None

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()


def read_pdf_rows(source: Union[Path, IO[bytes]]) -> List[str]:
    with PDFLoader(source) as loader:
        return loader.rows()


def rows_from_text(text: str) -> List[str]:
    """Split text into rows, dropping blank lines and trailing whitespace."""
    return [line.rstrip() for line in text.splitlines() if line.strip()]


def read_text_rows(path: Path) -> List[str]:
    """Read an already-extracted UTF-8 text file as rows."""
    return rows_from_text(Path(path).read_text(encoding='utf-8'))


def _skip_bad_line(fields: List[str]) -> None:
    logger.warning(f"Skipping export row with {len(fields)} fields: {','.join(fields)[:80]}")
    return None


def read_export_rows(source: Union[Path, IO], min_columns: int = EXPORT_MIN_COLUMNS) -> List[List[str]]:
    """
    Decode a tabular export into rows of strings.

    Args:
        source: Path or file object holding the CSV export
        min_columns: Minimum header width

    Returns:
        Data rows (header excluded) as lists of strings

    Raises:
        ValueError: If the export is empty or its header is too narrow

    Rows wider than the header are logged and skipped.
    """
    try:
        df = pd.read_csv(
            source,
            dtype=str,
            keep_default_na=False,
            engine="python",
            on_bad_lines=_skip_bad_line,
        )
    except pd.errors.EmptyDataError:
        raise ValueError("failed to read export header: file is empty") from None

    if len(df.columns) < min_columns:
        raise ValueError(
            f"invalid export format: expected at least {min_columns} columns, got {len(df.columns)}"
        )

    logger.info(f"Read {len(df)} export row(s) with {len(df.columns)} columns")
    # Short rows are padded with NaN by pandas
    return df.fillna("").values.tolist()
