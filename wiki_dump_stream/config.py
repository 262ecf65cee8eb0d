"""
設定と CLI 引数。オプション未指定時は環境変数、それも無ければ既定値を使う。
"""

import argparse
import os
from pathlib import Path

from wiki_dump_stream.xml_events import DEFAULT_CHUNK_SIZE


DEFAULT_DATA_DIR = '/data'
DEFAULT_PROGRESS_EVERY = 50000


def _env_path(key: str, default: str | None) -> Path | None:
    """環境変数を Path で返す。未設定・空白のみなら default（None なら None）。"""
    v = os.environ.get(key)
    if v is None or not str(v).strip():
        return Path(default) if default is not None else None
    return Path(v)


def env_int(key: str, default: int) -> int:
    """環境変数を int で返す。未設定・不正時は default。"""
    v = os.environ.get(key)
    if v is None or not str(v).strip():
        return default
    try:
        return int(v)
    except ValueError:
        return default


def positive_int(value: str) -> int:
    """1 以上の整数のみ受け付ける argparse 用の型。"""
    try:
        n = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f'整数ではありません: {value!r}')
    if n < 1:
        raise argparse.ArgumentTypeError(f'1 以上を指定してください: {n}')
    return n


def build_parser() -> argparse.ArgumentParser:
    """ArgumentParser を組み立てる。既定値は呼び出し時点の環境変数から決まる。"""
    p = argparse.ArgumentParser(
        prog='wiki_dump_stream',
        description='MediaWiki の XML ダンプをページ単位でストリームし、JSON Lines に書き出す',
    )
    p.add_argument(
        '--input',
        type=Path,
        default=_env_path('WIKI_DUMP_PATH', None),
        help='ダンプファイル（.xml / .xml.bz2 / .xml.gz）。既定: WIKI_DUMP_PATH。未指定なら --data-dir から探す',
    )
    p.add_argument(
        '--data-dir',
        type=Path,
        default=_env_path('WIKI_DATA_DIR', DEFAULT_DATA_DIR),
        help='pages-articles ダンプを探すディレクトリ。既定: WIKI_DATA_DIR または /data',
    )
    p.add_argument(
        '--output-dir',
        type=Path,
        default=_env_path('WIKI_OUTPUT_DIR', None),
        help='pages.jsonl を置くディレクトリ。既定: WIKI_OUTPUT_DIR。未指定なら件数のみログ出力',
    )
    p.add_argument(
        '--ns',
        type=int,
        action='append',
        default=None,
        metavar='CODE',
        help='出力する名前空間番号（複数指定可）。既定: すべて',
    )
    p.add_argument(
        '--articles-only',
        action='store_true',
        help='標準名前空間の通常の記事（text/x-wiki, wikitext）だけを出力する',
    )
    p.add_argument(
        '--limit',
        type=positive_int,
        default=None,
        help='出力ページ数の上限。達したら残りのダンプは読まない（1 以上）',
    )
    p.add_argument(
        '--chunk-size',
        type=int,
        default=env_int('WIKI_XML_CHUNK_SIZE', DEFAULT_CHUNK_SIZE),
        help=f'1 回に読むバイト数。既定: WIKI_XML_CHUNK_SIZE または {DEFAULT_CHUNK_SIZE}',
    )
    p.add_argument(
        '--progress-every',
        type=int,
        default=env_int('WIKI_PROGRESS_EVERY', DEFAULT_PROGRESS_EVERY),
        help=f'進捗ログを出すページ間隔。既定: WIKI_PROGRESS_EVERY または {DEFAULT_PROGRESS_EVERY}',
    )
    return p


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """コマンドライン引数をパースする。"""
    return build_parser().parse_args(argv)
