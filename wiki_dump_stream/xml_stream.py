"""
MediaWiki の pages-articles.xml（.xml.bz2 / .xml.gz も可）からページをストリームし、Page を yield する。
全ダンプをメモリに載せず、呼び出し側が読むのをやめた時点でファイルを閉じる。
"""

from pathlib import Path
from typing import Iterator

from wiki_dump_stream.dump_file import open_dump
from wiki_dump_stream.errors import MalformedXmlError, UnexpectedEofError
from wiki_dump_stream.parser import Page, parse
from wiki_dump_stream.xml_events import DEFAULT_CHUNK_SIZE


def stream_pages(xml_path: Path, chunk_size: int = DEFAULT_CHUNK_SIZE) -> Iterator[Page]:
    """
    ダンプを開き、各ページを Page として yield する。
    解析エラーは DumpError としてそのまま送出する（それまでに yield したページは有効）。
    圧縮ファイルの途中切れ（EOFError）は UnexpectedEofError、壊れた圧縮データなどの
    読込エラー（OSError）は MalformedXmlError に変換する。
    """
    f = open_dump(xml_path)
    try:
        yield from parse(f, chunk_size=chunk_size)
    except EOFError as e:
        raise UnexpectedEofError(f'圧縮ファイルが途中で終わっています: {e}') from e
    except OSError as e:
        raise MalformedXmlError(f'ダンプを読み込めません: {e}') from e
    finally:
        f.close()
