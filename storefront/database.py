# storefront/database.py
"""
File-backed storage layer. Every table is one CSV file inside a data directory;
rows are read into pandas DataFrames and written back whole. Each table file has
a sibling ``.lock`` file guarded with filelock so concurrent writers serialize.

Writes go to a temp file first and are moved into place with ``os.replace``,
so readers never observe a half-written table.

Multi-table changes use ``transaction()``:

    with db.transaction("products", "orders") as tx:
        tx.decrement("products", "stock", {"p1": 2})
        tx.create_record("orders", {...})

All named tables are locked (in sorted order) for the duration of the block.
Changes are applied to in-memory frames and only written if the block exits
cleanly; an exception leaves every file untouched.
"""

from contextlib import ExitStack, contextmanager
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional
import logging
import os
import uuid

import pandas as pd
from filelock import FileLock

logger = logging.getLogger(__name__)


class ConstraintError(ValueError):
    """Raised when a conditional update would break a column floor."""

    def __init__(self, table: str, column: str, keys: List[str]):
        self.table = table
        self.column = column
        self.keys = keys
        super().__init__(f"{table}.{column} would drop below its floor for {', '.join(keys)}")


def _cell(value: Any) -> str:
    # everything is stored as text; models convert back to proper types
    if value is None:
        return ""
    return str(value)


def _to_records(df: pd.DataFrame) -> List[Dict[str, Any]]:
    if df.empty:
        return []
    return df.fillna("").to_dict(orient="records")


def _match(df: pd.DataFrame, key: str, value: Any) -> pd.Series:
    if key not in df.columns:
        return pd.Series(False, index=df.index)
    return df[key].astype(str) == str(value)


def _append_rows(df: pd.DataFrame, rows: List[Dict[str, Any]]) -> pd.DataFrame:
    new = pd.DataFrame([{k: _cell(v) for k, v in row.items()} for row in rows])
    if df.columns.empty:
        return new
    return pd.concat([df, new], ignore_index=True, sort=False).fillna("")


def _apply_updates(df: pd.DataFrame, mask: pd.Series, updates: Mapping[str, Any]) -> pd.DataFrame:
    for k, v in updates.items():
        if k not in df.columns:
            df[k] = ""
        df.loc[mask, k] = _cell(v)
    return df


class FileBackedDB:
    """
    Manages the CSV tables inside ``data_dir``.
    ``table_files`` maps logical table names to file names; unknown tables fall
    back to ``<table>.csv``.
    """

    def __init__(self, data_dir: Path, table_files: Optional[Mapping[str, str]] = None,
                 lock_timeout: float = -1):
        self.data_dir = Path(data_dir)
        self.table_files = dict(table_files or {})
        self.lock_timeout = lock_timeout

    def table_path(self, table: str) -> Path:
        """Location of the CSV file backing `table`."""
        return self._file_path(table)

    def _file_path(self, table: str) -> Path:
        if table.endswith(".csv"):
            return self.data_dir / Path(table)
        filename = self.table_files.get(table, f"{table}.csv")
        return self.data_dir / Path(filename)

    def _lock_for(self, path: Path) -> FileLock:
        path.parent.mkdir(parents=True, exist_ok=True)
        return FileLock(str(path) + ".lock", timeout=self.lock_timeout)

    def _read_df(self, table: str) -> pd.DataFrame:
        path = self._file_path(table)
        if not path.exists() or path.stat().st_size == 0:
            return pd.DataFrame()
        return pd.read_csv(path, dtype=str, keep_default_na=False).fillna("")

    def _stage_df(self, path: Path, df: pd.DataFrame) -> Path:
        """Write ``df`` next to ``path`` under a temp name and return the temp path."""
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_name(f"{path.name}.{uuid.uuid4().hex}.tmp")
        try:
            df.to_csv(tmp, index=False)
        except Exception:
            tmp.unlink(missing_ok=True)
            raise
        return tmp

    def _write_df_nolock(self, table: str, df: pd.DataFrame) -> None:
        """
        Write DataFrame for ``table`` WITHOUT acquiring the file lock.
        Use this only when the caller already holds the lock.
        """
        path = self._file_path(table)
        os.replace(self._stage_df(path, df), path)

    # --- high-level CRUD primitives ---

    def list_records(self, table: str) -> List[Dict[str, Any]]:
        return _to_records(self._read_df(table))

    def find_records(self, table: str, key: str, value: Any) -> List[Dict[str, Any]]:
        df = self._read_df(table)
        if df.empty:
            return []
        return _to_records(df[_match(df, key, value)])

    def get_record(self, table: str, key: str, value: Any) -> Optional[Dict[str, Any]]:
        rows = self.find_records(table, key, value)
        return rows[0] if rows else None

    def create_record(self, table: str, data: Dict[str, Any], id_field: str = "id") -> Dict[str, Any]:
        """
        Create a new record. If id_field not present in `data`, one will be generated (uuid4 hex).
        Returns the saved record (with id).
        """
        if not data.get(id_field):
            data[id_field] = uuid.uuid4().hex
        with self._lock_for(self._file_path(table)):
            df = _append_rows(self._read_df(table), [data])
            self._write_df_nolock(table, df)
        return data

    def update_record(self, table: str, key: str, value: Any, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Update rows where df[key] == value with fields in updates. Returns the updated first row dict or None.
        """
        with self._lock_for(self._file_path(table)):
            df = self._read_df(table)
            if df.empty:
                return None
            mask = _match(df, key, value)
            if not mask.any():
                return None
            df = _apply_updates(df, mask, updates)
            self._write_df_nolock(table, df)
            return _to_records(df[mask])[0]

    def delete_record(self, table: str, key: str, value: Any) -> bool:
        """
        Delete all records where df[key] == value. Returns True if any rows were removed.
        """
        with self._lock_for(self._file_path(table)):
            df = self._read_df(table)
            if df.empty:
                return False
            mask = _match(df, key, value)
            if not mask.any():
                return False
            self._write_df_nolock(table, df[~mask])
            return True

    @contextmanager
    def transaction(self, *tables: str) -> Iterator["Transaction"]:
        names = sorted(set(tables))
        with ExitStack() as stack:
            for name in names:
                stack.enter_context(self._lock_for(self._file_path(name)))
            tx = Transaction(self, names)
            yield tx
            tx.commit()


class Transaction:
    """
    Unit of work over a fixed set of locked tables. Obtained from
    FileBackedDB.transaction(); never construct it directly.
    """

    def __init__(self, db: FileBackedDB, tables: Iterable[str]):
        self._db = db
        self._frames: Dict[str, pd.DataFrame] = {t: db._read_df(t) for t in tables}
        self._dirty: set = set()

    def _frame(self, table: str) -> pd.DataFrame:
        if table not in self._frames:
            raise KeyError(f"table {table!r} is not part of this transaction")
        return self._frames[table]

    def _store(self, table: str, df: pd.DataFrame) -> None:
        self._frames[table] = df
        self._dirty.add(table)

    def find_records(self, table: str, key: str, value: Any) -> List[Dict[str, Any]]:
        df = self._frame(table)
        if df.empty:
            return []
        return _to_records(df[_match(df, key, value)])

    def get_record(self, table: str, key: str, value: Any) -> Optional[Dict[str, Any]]:
        rows = self.find_records(table, key, value)
        return rows[0] if rows else None

    def create_many(self, table: str, rows: List[Dict[str, Any]], id_field: str = "id") -> List[Dict[str, Any]]:
        if not rows:
            return []
        for row in rows:
            if not row.get(id_field):
                row[id_field] = uuid.uuid4().hex
        self._store(table, _append_rows(self._frame(table), rows))
        return rows

    def create_record(self, table: str, data: Dict[str, Any], id_field: str = "id") -> Dict[str, Any]:
        return self.create_many(table, [data], id_field=id_field)[0]

    def update_record(self, table: str, key: str, value: Any, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        df = self._frame(table)
        if df.empty:
            return None
        mask = _match(df, key, value)
        if not mask.any():
            return None
        df = _apply_updates(df.copy(), mask, updates)
        self._store(table, df)
        return _to_records(df[mask])[0]

    def delete_records(self, table: str, key: str, value: Any) -> int:
        df = self._frame(table)
        if df.empty:
            return 0
        mask = _match(df, key, value)
        removed = int(mask.sum())
        if removed:
            self._store(table, df[~mask].reset_index(drop=True))
        return removed

    def decrement(self, table: str, column: str, amounts: Mapping[str, int], key: str = "id",
                  floor: Optional[int] = 0) -> Dict[str, int]:
        """
        Subtract ``amounts[k]`` from ``column`` of the row whose ``key`` is k, for all
        keys at once. If ``floor`` is not None and any result would drop below it,
        nothing is changed and ConstraintError lists the offending keys.
        Returns the new column values by key.
        """
        df = self._frame(table)
        if not amounts:
            return {}
        if df.empty or key not in df.columns:
            raise KeyError(f"no rows in {table} for {', '.join(map(str, amounts))}")
        df = df.copy()
        if column not in df.columns:
            df[column] = "0"
        keys = df[key].astype(str)
        missing = [str(k) for k in amounts if not (keys == str(k)).any()]
        if missing:
            raise KeyError(f"no rows in {table} for {', '.join(missing)}")

        current = pd.to_numeric(df[column], errors="coerce").fillna(0).astype(int)
        delta = keys.map({str(k): int(v) for k, v in amounts.items()}).fillna(0).astype(int)
        result = current - delta
        if floor is not None:
            below = (delta > 0) & (result < floor)
            if below.any():
                raise ConstraintError(table, column, keys[below].tolist())

        touched = delta != 0
        df.loc[touched, column] = result[touched].astype(str)
        self._store(table, df)
        return {k: int(v) for k, v in zip(keys[touched], result[touched])}

    def commit(self) -> None:
        """Stage every changed table, then move all of them into place."""
        staged = []
        try:
            for table in sorted(self._dirty):
                path = self._db._file_path(table)
                staged.append((self._db._stage_df(path, self._frames[table]), path))
        except Exception:
            for tmp, _ in staged:
                tmp.unlink(missing_ok=True)
            raise
        for tmp, path in staged:
            os.replace(tmp, path)
        if staged:
            logger.debug("committed tables: %s", ", ".join(sorted(self._dirty)))
        self._dirty.clear()
