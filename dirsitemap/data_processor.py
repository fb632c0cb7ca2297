"""
1.0 Data Processor Module
Tabular export of generated sitemaps and change detection between runs.

Key features:
- Sitemap -> pandas DataFrame with URL section/subsection/depth columns
- One CSV snapshot per site name, replaced on every run
- Monthly change log files (discovered / modified / removed)
"""

import pandas as pd
import os
import logging
from typing import Optional
from datetime import datetime, timezone
from urllib.parse import urlparse

from dirsitemap.sitemap import Sitemap

logger = logging.getLogger(__name__)

# 1.1 Column name constants for consistency
COL_LOC = "loc"
COL_LASTMOD = "lastmod"
COL_CHANGEFREQ = "changefreq"
COL_PRIORITY = "priority"
COL_SECTION = "section"
COL_SUBSECTION = "subsection"
COL_PATH_DEPTH = "path_depth"
COL_DETECTED_AT = "detected_at"
COL_CHANGE_TYPE = "change_type"
COL_LASTMOD_PREV = "lastmod_prev"

SNAPSHOT_COLUMNS = [
    COL_LOC, COL_LASTMOD, COL_CHANGEFREQ, COL_PRIORITY,
    COL_SECTION, COL_SUBSECTION, COL_PATH_DEPTH,
]
CHANGE_LOG_COLUMNS = [COL_DETECTED_AT, COL_LOC, COL_CHANGE_TYPE, COL_LASTMOD, COL_LASTMOD_PREV]


def _path_segments(loc: Optional[str]) -> list:
    if not loc:
        return []
    return [segment for segment in urlparse(loc).path.split("/") if segment]


class DataProcessor:
    """
    2.0 DataProcessor Class
    Turns sitemaps into DataFrames, stores snapshots and logs changes.
    """

    def __init__(self, data_dir: str = "data"):
        """
        2.1 Initialize the data processor.

        Args:
            data_dir: Root directory for CSV output (default: "data")
        """
        self.data_dir = data_dir
        os.makedirs(self.data_dir, exist_ok=True)
        logger.info(f"DataProcessor initialized with data directory: {data_dir}")

    # =========================================================================
    # 3.0 FILE PATH HELPERS
    # =========================================================================

    def _snapshot_path(self, name: str) -> str:
        return os.path.join(self.data_dir, f"{name}_urls.csv")

    def _change_log_path(self, name: str, run_ts: datetime) -> str:
        """
        3.1 Monthly change log file, e.g. data/site_changes_2024-05.csv
        """
        return os.path.join(self.data_dir, f"{name}_changes_{run_ts.strftime('%Y-%m')}.csv")

    # =========================================================================
    # 4.0 CONVERSION
    # =========================================================================

    def to_dataframe(self, sitemap: Sitemap) -> pd.DataFrame:
        """
        4.1 Build a DataFrame with one row per sitemap entry.

        GenerateMarker items carry no URL and are skipped.
        """
        rows = []
        for entry in sitemap.entries:
            row = entry.to_dict()
            segments = _path_segments(row[COL_LOC])
            row[COL_SECTION] = segments[0] if segments else None
            row[COL_SUBSECTION] = segments[1] if len(segments) > 1 else None
            row[COL_PATH_DEPTH] = len(segments)
            rows.append(row)

        return pd.DataFrame(rows, columns=SNAPSHOT_COLUMNS)

    # =========================================================================
    # 5.0 SNAPSHOTS
    # =========================================================================

    def load_snapshot(self, name: str) -> pd.DataFrame:
        """
        5.1 Load the previous snapshot, or an empty frame if there is none
        or it cannot be read as CSV.

        Duplicate and null locs are dropped with a warning.
        """
        path = self._snapshot_path(name)
        if not os.path.exists(path):
            return pd.DataFrame(columns=SNAPSHOT_COLUMNS)

        try:
            df = pd.read_csv(path)
        except (pd.errors.EmptyDataError, pd.errors.ParserError, UnicodeDecodeError) as e:
            logger.warning(f"Could not load CSV snapshot {path}: {e}")
            return pd.DataFrame(columns=SNAPSHOT_COLUMNS)
        logger.info(f"Loaded snapshot: {len(df):,} rows from {path}")

        if COL_LOC not in df.columns:
            logger.warning(f"Snapshot {path} has no '{COL_LOC}' column, ignoring it")
            return pd.DataFrame(columns=SNAPSHOT_COLUMNS)

        null_count = df[COL_LOC].isna().sum()
        if null_count > 0:
            logger.warning(f"Snapshot has {null_count:,} null 'loc' values - will filter")
            df = df.dropna(subset=[COL_LOC])

        dup_count = df.duplicated(subset=[COL_LOC]).sum()
        if dup_count > 0:
            logger.warning(f"Snapshot has {dup_count:,} duplicate URLs - will dedupe")
            df = df.drop_duplicates(subset=[COL_LOC], keep="first")

        return df.reindex(columns=SNAPSHOT_COLUMNS)

    def save_snapshot(self, name: str, df: pd.DataFrame) -> str:
        """5.2 Save snapshot as CSV, replacing the previous one."""
        path = self._snapshot_path(name)
        df.to_csv(path, index=False)
        logger.debug(f"Saved snapshot to {path}")
        return path

    # =========================================================================
    # 6.0 CHANGE DETECTION
    # =========================================================================

    def detect_changes(self, previous_df: pd.DataFrame, current_df: pd.DataFrame,
                       detected_at: Optional[datetime] = None) -> pd.DataFrame:
        """
        6.1 Compare two snapshots by loc.

        - discovered: loc only in current
        - removed: loc only in previous
        - modified: loc in both, lastmod differs
        """
        detected_at = detected_at or datetime.now(timezone.utc)

        prev = previous_df.reindex(columns=[COL_LOC, COL_LASTMOD]).dropna(subset=[COL_LOC])
        cur = current_df.reindex(columns=[COL_LOC, COL_LASTMOD]).dropna(subset=[COL_LOC])
        prev = prev.drop_duplicates(subset=[COL_LOC]).rename(columns={COL_LASTMOD: COL_LASTMOD_PREV})
        cur = cur.drop_duplicates(subset=[COL_LOC])

        merged = cur.merge(prev, on=COL_LOC, how="outer", indicator=True)

        both = merged["_merge"] == "both"
        lastmod_changed = (merged[COL_LASTMOD] != merged[COL_LASTMOD_PREV]) & ~(
            merged[COL_LASTMOD].isna() & merged[COL_LASTMOD_PREV].isna()
        )

        merged[COL_CHANGE_TYPE] = None
        merged.loc[merged["_merge"] == "left_only", COL_CHANGE_TYPE] = "discovered"
        merged.loc[merged["_merge"] == "right_only", COL_CHANGE_TYPE] = "removed"
        merged.loc[both & lastmod_changed, COL_CHANGE_TYPE] = "modified"

        changes = merged.dropna(subset=[COL_CHANGE_TYPE]).copy()
        changes[COL_DETECTED_AT] = detected_at
        changes = changes.reindex(columns=CHANGE_LOG_COLUMNS).sort_values(COL_LOC)
        return changes.reset_index(drop=True)

    def _save_change_log(self, changes_df: pd.DataFrame, path: str) -> None:
        """6.2 Append changes to the monthly CSV log, writing a header for new files."""
        if changes_df.empty:
            return

        if os.path.exists(path):
            changes_df.to_csv(path, mode="a", header=False, index=False)
            logger.info(f"Appended {len(changes_df):,} changes to {path}")
        else:
            changes_df.to_csv(path, mode="w", header=True, index=False)
            logger.info(f"Created change log with {len(changes_df):,} changes at {path}")

    # =========================================================================
    # 7.0 MAIN PROCESSING METHOD
    # =========================================================================

    def process_sitemap(self, name: str, sitemap: Sitemap) -> pd.DataFrame:
        """
        7.1 Snapshot a generated sitemap and log what changed since the last run.

        Returns:
            DataFrame of changes (empty when nothing changed)
        """
        current_dt = datetime.now(timezone.utc)
        current_df = self.to_dataframe(sitemap)
        logger.info(f"Processing {len(current_df)} URLs for {name}")

        previous_df = self.load_snapshot(name)
        changes = self.detect_changes(previous_df, current_df, detected_at=current_dt)

        counts = changes[COL_CHANGE_TYPE].value_counts().to_dict()
        logger.info(
            f"Changes: {counts.get('discovered', 0)} discovered, "
            f"{counts.get('modified', 0)} modified, {counts.get('removed', 0)} removed"
        )

        if not current_df.empty:
            section_counts = current_df[COL_SECTION].value_counts().head(5)
            logger.info(f"Top sections: {section_counts.to_dict()}")

        self._save_change_log(changes, self._change_log_path(name, current_dt))
        self.save_snapshot(name, current_df)
        return changes
