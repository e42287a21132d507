"""
CSV reader for health data imports.

Provides robust CSV reading with encoding detection, delimiter detection,
header normalization and safe numeric conversion. All values are kept as
text; interpretation is left to the feature importers.
"""

import io
import logging
from pathlib import Path
from typing import Any

import pandas as pd

from healthpod.utils.exceptions import CsvImportError, ParsingError
from healthpod.utils.parameters import CSVConfig

logger = logging.getLogger(__name__)


class CsvTable:
    """Header names and text rows read from a CSV file."""

    def __init__(self, headers: list[str], rows: list[list[str]]) -> None:
        self.headers = headers
        self.rows = rows

    def __len__(self) -> int:
        return len(self.rows)


def safe_float_conversion(value: Any) -> float | None:
    """
    Safely convert value to float, handling comma decimal separator.

    Args:
        value: Value to convert.

    Returns:
        Float value or None if conversion fails.
    """
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return None

    if isinstance(value, (int, float)):
        return float(value)

    if isinstance(value, str):
        value = value.strip().replace(",", ".")
        if not value:
            return None
        try:
            return float(value)
        except ValueError:
            return None

    return None


class CSVReader:
    """
    Reader for user-supplied CSV files.

    Handles encoding detection, delimiter detection and header
    normalization. Rows shorter than the header are padded with empty
    strings and rows wider than the header keep their leading cells.
    """

    def __init__(self, csv_config: CSVConfig) -> None:
        """
        Initialize CSV reader.

        Args:
            csv_config: CSV parsing configuration.
        """
        self.csv_config = csv_config

    def _decode(self, file_path: Path) -> str:
        """
        Read a file, trying each configured encoding in turn.

        Raises:
            ParsingError: If the file cannot be read.
        """
        try:
            raw = file_path.read_bytes()
        except OSError as e:
            raise ParsingError(f"Failed to read CSV file {file_path}: {e}") from e

        for encoding in self.csv_config.encodings:
            try:
                text = raw.decode(encoding)
                logger.debug(f"Detected encoding: {encoding}")
                return text
            except (UnicodeDecodeError, LookupError):
                continue

        logger.warning("Encoding detection failed, using utf-8 with replacement")
        return raw.decode("utf-8", errors="replace")

    def _detect_delimiter(self, content: str) -> str:
        """Detect the CSV delimiter from the first line."""
        first_line = content.lstrip("\ufeff").split("\n", 1)[0]

        for delimiter in self.csv_config.delimiters:
            if delimiter in first_line:
                logger.debug(f"Detected delimiter: {repr(delimiter)}")
                return delimiter

        logger.debug("No delimiter found in header line, using comma")
        return ","

    @staticmethod
    def normalize_header(header: Any) -> str:
        """Strip and lower-case a header name."""
        return str(header).strip().lower()

    def read(self, file_path: Path | None = None, content: str | None = None) -> CsvTable:
        """
        Read CSV from a file or from text.

        Args:
            file_path: Path to the CSV file. Ignored when content is given.
            content: CSV text.

        Returns:
            Table with normalized headers and text rows.

        Raises:
            CsvImportError: If the CSV is empty.
            ParsingError: If the CSV cannot be parsed.
        """
        if content is None:
            if file_path is None:
                raise ParsingError("Either a file path or CSV content is required")
            content = self._decode(file_path)

        content = content.lstrip("\ufeff")
        if not content.strip():
            raise CsvImportError("CSV file is empty")

        delimiter = self._detect_delimiter(content)
        extra_cells: list[list[str]] = []

        try:
            width = pd.read_csv(
                io.StringIO(content), sep=delimiter, header=None, dtype=str, nrows=1
            ).shape[1]

            # Rows wider than the header keep their leading cells.
            def keep_leading_cells(bad_line: list[str]) -> list[str]:
                if any(cell.strip() for cell in bad_line[width:]):
                    extra_cells.append(bad_line[width:])
                return bad_line[:width]

            df = pd.read_csv(
                io.StringIO(content),
                sep=delimiter,
                header=None,
                dtype=str,
                keep_default_na=False,
                skip_blank_lines=True,
                engine="python",
                on_bad_lines=keep_leading_cells,
            )
        except pd.errors.EmptyDataError as e:
            raise CsvImportError("CSV file is empty") from e
        except Exception as e:
            raise ParsingError(f"Failed to parse CSV: {e}") from e

        if extra_cells:
            logger.warning(f"Ignored extra cells in {len(extra_cells)} rows wider than the header")

        df = df.fillna("")
        if df.empty:
            raise CsvImportError("CSV file is empty")

        records = df.values.tolist()
        headers = [self.normalize_header(h) for h in records[0]]

        # Trailing empty header cells come from trailing delimiters.
        while headers and not headers[-1]:
            headers.pop()

        rows: list[list[str]] = []
        for record in records[1:]:
            row = [str(value) for value in record]
            if not any(value.strip() for value in row):
                continue
            row.extend([""] * (len(headers) - len(row)))
            rows.append(row)

        logger.info(f"Read {len(rows)} rows with columns {headers}")
        return CsvTable(headers, rows)
