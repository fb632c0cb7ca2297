"""
DATA PROCESSOR TESTS - DataFrame export, snapshots and change detection

Run: pytest tests/test_data_processor.py
"""

import glob
import os
import sys
import tempfile
from pathlib import Path

import pandas as pd

PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from dirsitemap.data_processor import SNAPSHOT_COLUMNS, DataProcessor
from dirsitemap.sitemap import GenerateMarker, Sitemap, SitemapEntry


def make_sitemap(*pairs) -> Sitemap:
    items = []
    for url, lastmod in pairs:
        entry = SitemapEntry()
        entry.url = url
        entry.last_modified = lastmod
        items.append(entry)
    return Sitemap(items)

# =============================================================================
# 1. DATAFRAME
# =============================================================================

def test_to_dataframe_sections():
    with tempfile.TemporaryDirectory() as tmp:
        processor = DataProcessor(data_dir=tmp)
        sitemap = make_sitemap(
            ("/", None),
            ("/blog/2020/post.html", "2020-05-01T00:00:00Z"),
            ("https://example.com/shop/", None),
        )
        sitemap.extend([GenerateMarker()])

        df = processor.to_dataframe(sitemap)
        assert list(df.columns) == SNAPSHOT_COLUMNS
        assert len(df) == 3

        home, post, shop = df.to_dict("records")
        assert home["path_depth"] == 0
        assert pd.isna(home["section"])
        assert pd.isna(home["subsection"])
        assert post["section"] == "blog"
        assert post["subsection"] == "2020"
        assert post["path_depth"] == 3
        assert post["lastmod"] == "2020-05-01T00:00:00Z"
        assert shop["section"] == "shop"
        assert pd.isna(shop["subsection"])


def test_to_dataframe_empty():
    with tempfile.TemporaryDirectory() as tmp:
        df = DataProcessor(data_dir=tmp).to_dataframe(Sitemap())
        assert df.empty
        assert list(df.columns) == SNAPSHOT_COLUMNS

# =============================================================================
# 2. CHANGE DETECTION
# =============================================================================

def test_detect_changes():
    with tempfile.TemporaryDirectory() as tmp:
        processor = DataProcessor(data_dir=tmp)
        previous = pd.DataFrame({
            "loc": ["/a", "/b", "/c", "/d"],
            "lastmod": ["2020-01-01T00:00:00Z", "2020-01-01T00:00:00Z", None, None],
        })
        current = pd.DataFrame({
            "loc": ["/a", "/b", "/d", "/e"],
            "lastmod": ["2020-01-01T00:00:00Z", "2021-01-01T00:00:00Z", None, None],
        })

        changes = processor.detect_changes(previous, current)
        by_loc = dict(zip(changes["loc"], changes["change_type"]))
        assert by_loc == {"/b": "modified", "/c": "removed", "/e": "discovered"}

        modified = changes[changes["loc"] == "/b"].iloc[0]
        assert modified["lastmod_prev"] == "2020-01-01T00:00:00Z"
        assert modified["lastmod"] == "2021-01-01T00:00:00Z"

# =============================================================================
# 3. SNAPSHOT + CHANGE LOG FILES
# =============================================================================

def test_process_sitemap_twice():
    with tempfile.TemporaryDirectory() as tmp:
        processor = DataProcessor(data_dir=tmp)

        first = processor.process_sitemap("site", make_sitemap(
            ("/", "2020-01-01T00:00:00Z"),
            ("/about/", "2020-01-01T00:00:00Z"),
        ))
        assert sorted(first["change_type"]) == ["discovered", "discovered"]
        assert os.path.exists(os.path.join(tmp, "site_urls.csv"))

        second = processor.process_sitemap("site", make_sitemap(
            ("/", "2020-02-01T00:00:00Z"),
            ("/contact.html", None),
        ))
        assert dict(zip(second["loc"], second["change_type"])) == {
            "/": "modified",
            "/about/": "removed",
            "/contact.html": "discovered",
        }

        snapshot = processor.load_snapshot("site")
        assert sorted(snapshot["loc"]) == ["/", "/contact.html"]

        logs = glob.glob(os.path.join(tmp, "site_changes_*.csv"))
        assert len(logs) == 1
        assert len(pd.read_csv(logs[0])) == 5


def test_unchanged_run_logs_nothing():
    with tempfile.TemporaryDirectory() as tmp:
        processor = DataProcessor(data_dir=tmp)
        sitemap = make_sitemap(("/", "2020-01-01T00:00:00Z"))
        processor.process_sitemap("site", sitemap)
        assert processor.process_sitemap("site", sitemap).empty


def test_load_snapshot_dedupes():
    with tempfile.TemporaryDirectory() as tmp:
        processor = DataProcessor(data_dir=tmp)
        pd.DataFrame({"loc": ["/a", "/a", None], "lastmod": [None, None, None]}).to_csv(
            os.path.join(tmp, "site_urls.csv"), index=False
        )
        snapshot = processor.load_snapshot("site")
        assert list(snapshot["loc"]) == ["/a"]
        assert list(snapshot.columns) == SNAPSHOT_COLUMNS


def test_unreadable_snapshot_starts_fresh():
    with tempfile.TemporaryDirectory() as tmp:
        processor = DataProcessor(data_dir=tmp)
        path = os.path.join(tmp, "site_urls.csv")

        Path(path).write_text("", encoding="utf-8")
        snapshot = processor.load_snapshot("site")
        assert snapshot.empty
        assert list(snapshot.columns) == SNAPSHOT_COLUMNS

        changes = processor.process_sitemap("site", make_sitemap(("/", None)))
        assert list(changes["change_type"]) == ["discovered"]
        assert list(processor.load_snapshot("site")["loc"]) == ["/"]
