"""Code-mapping table loading.

The mapping tables are CSV files with ``source_code`` and ``target_code``
columns (lines starting with ``#`` are comments). They are read once, off the
event loop, and the resulting CodeTables value is shared by every request.

Concurrency:
    - ``CodeTableLoader.get`` is single-flight: callers arriving while the
      load is in progress await the same task instead of starting another
    - A failed load is not cached; the next caller retries
"""

import asyncio
import logging
from pathlib import Path
from typing import Optional, Union

import pandas as pd

from trial_lookup.domain.code_tables import CodeTable, CodeTableGroup, CodeTables
from trial_lookup.domain.ports import CodeTableError
from trial_lookup.domain.research_study import AJCC_SYSTEM, RXNORM_SYSTEM, SNOMED_SYSTEM

logger = logging.getLogger(__name__)

DEFAULT_TABLE_DIR = Path(__file__).parent.parent / "data"

RXNORM_TABLE_FILE = "rxnorm_snomed.csv"
STAGE_SNOMED_TABLE_FILE = "stage_snomed.csv"
STAGE_AJCC_TABLE_FILE = "stage_ajcc.csv"

REQUIRED_COLUMNS = ("source_code", "target_code")


def load_code_table(path: Union[str, Path], name: str, source_systems: frozenset) -> CodeTable:
    """Read a single mapping CSV into a CodeTable.

    Raises:
        CodeTableError: If the file is missing, unreadable or lacks the required columns
    """
    path = Path(path)
    if not path.exists():
        raise CodeTableError(f"Code table not found: {path}", source=str(path))

    try:
        df = pd.read_csv(path, dtype=str, comment="#", skipinitialspace=True, keep_default_na=False)
    except pd.errors.EmptyDataError:
        raise CodeTableError(f"Code table is empty: {path}", source=str(path))
    except (pd.errors.ParserError, UnicodeDecodeError) as e:
        raise CodeTableError(f"Unable to parse code table {path}: {str(e)}", source=str(path)) from e

    df.columns = [str(c).strip() for c in df.columns]
    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise CodeTableError(
            f"Code table {path} is missing columns: {', '.join(missing)}",
            source=str(path)
        )

    df = df[list(REQUIRED_COLUMNS)].apply(lambda col: col.str.strip())
    df = df[(df["source_code"] != "") & (df["target_code"] != "")]
    duplicates = df["source_code"].duplicated(keep="last")
    if duplicates.any():
        logger.warning(f"Code table {path.name} has {int(duplicates.sum())} duplicate source code(s); last entry wins")
    df = df[~duplicates]

    table = CodeTable(
        name=name,
        mappings=dict(zip(df["source_code"], df["target_code"])),
        source_systems=source_systems,
    )
    logger.info(f"Loaded {len(table)} mappings from {path.name}")
    return table


def load_code_tables(directory: Optional[Union[str, Path]] = None) -> CodeTables:
    """Read all mapping tables from ``directory`` (packaged tables by default)."""
    directory = Path(directory) if directory else DEFAULT_TABLE_DIR

    medication = load_code_table(
        directory / RXNORM_TABLE_FILE, "rxnorm", frozenset({RXNORM_SYSTEM})
    )
    stage_snomed = load_code_table(
        directory / STAGE_SNOMED_TABLE_FILE, "stage-snomed", frozenset({SNOMED_SYSTEM})
    )
    stage_ajcc = load_code_table(
        directory / STAGE_AJCC_TABLE_FILE, "stage-ajcc", frozenset({AJCC_SYSTEM})
    )
    return CodeTables(
        medication=medication,
        staging=CodeTableGroup(name="staging", tables=(stage_snomed, stage_ajcc)),
    )


class CodeTableLoader:
    """Loads the code tables once and hands the same value to every caller.

    Example Usage:
        ```python
        loader = CodeTableLoader()
        tables = await loader.get()
        ```
    """

    def __init__(self, directory: Optional[Union[str, Path]] = None):
        """Initialize CodeTableLoader.

        Parameters:
            directory: Directory holding the mapping CSVs (packaged tables if None)
        """
        self.directory = directory
        self._tables: Optional[CodeTables] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def loaded(self) -> bool:
        return self._tables is not None

    async def _load(self) -> CodeTables:
        tables = await asyncio.to_thread(load_code_tables, self.directory)
        self._tables = tables
        return tables

    async def get(self) -> CodeTables:
        """Return the code tables, loading them on first use.

        Raises:
            CodeTableError: If the tables cannot be loaded
        """
        if self._tables is not None:
            return self._tables

        if self._task is None:
            self._task = asyncio.create_task(self._load())
        task = self._task
        try:
            # Shielded so one cancelled waiter does not cancel the shared load
            return await asyncio.shield(task)
        except Exception:
            if self._task is task:
                self._task = None
            raise
