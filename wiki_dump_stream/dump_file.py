"""
ダンプファイルのパスを解決し、拡張子に応じて展開しながら開く。
"""

import bz2
import gzip
from pathlib import Path
from typing import IO


PAGES_ARTICLES = "pages-articles"

# 優先順: 解凍済み .xml、.xml.bz2、.xml.gz
DUMP_SUFFIXES = (".xml", ".xml.bz2", ".xml.gz")


def find_pages_articles(data_dir: Path) -> Path:
    """
    data_dir から pages-articles ダンプを探す: 解凍済み .xml を優先、なければ .xml.bz2、.xml.gz。
    """
    data_dir = Path(data_dir)
    if not data_dir.is_dir():
        raise FileNotFoundError(f"データディレクトリが存在しません: {data_dir}")
    candidates = sorted(f for f in data_dir.iterdir() if f.is_file() and PAGES_ARTICLES in f.name)
    for suffix in DUMP_SUFFIXES:
        found = [f for f in candidates if f.name.endswith(suffix)]
        if found:
            return found[0]
    raise FileNotFoundError(
        f"pages-articles ダンプ（.xml / .xml.bz2 / .xml.gz）が {data_dir} にありません。"
        "--input でダンプファイルを直接指定することもできます。"
    )


def open_dump(path: Path) -> IO[bytes]:
    """ダンプをバイナリで開く。.bz2 / .gz は読みながら展開する。"""
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"ダンプファイルが存在しません: {path}")
    if path.name.endswith(".bz2"):
        return bz2.open(path, "rb")
    if path.name.endswith(".gz"):
        return gzip.open(path, "rb")
    return open(path, "rb")
