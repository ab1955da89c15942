"""Parquet file storage with atomic write guarantees.

Handles all file I/O operations using Polars DataFrames.
Atomic writes prevent data corruption by writing to temporary files first.
"""

from pathlib import Path

import polars as pl
from loguru import logger


def _parquet_name(filename: str) -> str:
    return filename if filename.endswith(".parquet") else f"{filename}.parquet"


class ParquetStorage:
    """Manages atomic read/write operations for Parquet files."""

    def __init__(self, base_path: Path) -> None:
        """Initialize storage with a base directory.

        Args:
            base_path: Root directory for all parquet files
        """
        self.base_path = Path(base_path)
        self.base_path.mkdir(parents=True, exist_ok=True)
        logger.debug(f"ParquetStorage initialized at {self.base_path}")

    def path_for(self, filename: str) -> Path:
        return self.base_path / _parquet_name(filename)

    def exists(self, filename: str) -> bool:
        return self.path_for(filename).exists()

    def atomic_update(
        self,
        df: pl.DataFrame,
        filename: str,
        unique_keys: list[str],
    ) -> pl.DataFrame:
        """Merge new rows into an existing parquet file atomically.

        Rows of ``df`` replace stored rows with the same key values (last write
        wins, like a key-value put). Columns unknown to either side are filled
        with nulls.

        Args:
            df: New data to merge
            filename: Target parquet filename
            unique_keys: Columns identifying a row

        Returns:
            The combined DataFrame that was written
        """
        df = df.unique(subset=unique_keys, keep="last", maintain_order=True)

        if self.exists(filename):
            existing_df = self.read(filename)
            history_to_keep = existing_df.join(df.select(unique_keys), on=unique_keys, how="anti")
            combined_df = pl.concat([history_to_keep, df], how="diagonal_relaxed")
        else:
            combined_df = df

        combined_df = combined_df.sort(unique_keys, maintain_order=True)
        self.atomic_write(combined_df, filename)
        return combined_df

    def atomic_write(self, df: pl.DataFrame, filename: str) -> None:
        """Write DataFrame to parquet with atomic guarantees.

        Writes to a temporary file first, then renames to the target filename.
        This ensures the target file is never left in a partially written state.
        """
        target_path = self.path_for(filename)
        tmp_path = target_path.with_name(f"{target_path.name}.tmp")

        try:
            df.write_parquet(tmp_path)
            logger.debug(f"Wrote temporary file: {tmp_path}")

            # Atomic rename (overwrites target if it exists)
            tmp_path.replace(target_path)
            logger.info(f"Atomically wrote {len(df)} rows to {target_path}")

        except Exception as e:
            if tmp_path.exists():
                tmp_path.unlink()
            logger.error(f"Failed to write {target_path.name}: {e}")
            raise

    def read(self, filename: str) -> pl.DataFrame:
        """Read parquet file into a Polars DataFrame."""
        target_path = self.path_for(filename)

        if not target_path.exists():
            logger.debug(f"File not found: {target_path}")
            raise FileNotFoundError(f"No parquet file found: {target_path.name}")

        data = pl.read_parquet(target_path)
        logger.debug(f"Read {len(data)} rows from {target_path.name}")

        return data
