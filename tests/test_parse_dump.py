"""
parse のテスト。実際の XML 文書を expat 経由で流し、ページ列とエラーを検証する。
"""

import io

import pytest

from wiki_dump_stream.errors import DuplicateRevisionError, MalformedXmlError, UnexpectedEofError
from wiki_dump_stream.namespace import CustomNamespace, Namespace
from wiki_dump_stream.parser import Page, parse


HEADER = '<mediawiki xmlns="http://www.mediawiki.org/xml/export-0.10/" version="0.10" xml:lang="ja">'

SITEINFO = (
    '<siteinfo><sitename>Wikipedia</sitename><dbname>jawiki</dbname>'
    '<namespaces><namespace key="-2" case="first-letter">メディア</namespace>'
    '<namespace key="0" case="first-letter" /></namespaces></siteinfo>'
)


def page_xml(title, ns, text, extra=''):
    return (
        f'<page><title>{title}</title><ns>{ns}</ns><id>1</id>{extra}'
        '<revision><id>2</id><timestamp>2024-01-01T00:00:00Z</timestamp>'
        '<contributor><username>someone</username><id>3</id></contributor>'
        '<model>wikitext</model><format>text/x-wiki</format>'
        f'<text bytes="5" xml:space="preserve">{text}</text><sha1>abc</sha1>'
        '</revision></page>'
    )


DUMP = (
    '<?xml version="1.0" encoding="utf-8"?>\n'
    + HEADER + '\n'
    + SITEINFO + '\n'
    + page_xml('alpha', 0, 'delta') + '\n'
    + page_xml('T&amp;T', 6742, '&lt;ref&gt;x&lt;/ref&gt;', extra='<redirect title="beta" />') + '\n'
    + '</mediawiki>\n'
)


class CountingStream(io.BytesIO):
    """read で渡したバイト数を記録する。"""

    def __init__(self, data):
        super().__init__(data)
        self.consumed = 0

    def read(self, size=-1):
        chunk = super().read(size)
        self.consumed += len(chunk)
        return chunk


def test_parse_bytes_stream():
    """バイト列ストリームから全ページを順に返す。"""
    pages = list(parse(io.BytesIO(DUMP.encode('utf-8'))))
    assert pages == [
        Page('alpha', Namespace.MAIN, 'text/x-wiki', 'wikitext', 'delta'),
        Page('T&T', CustomNamespace(6742), 'text/x-wiki', 'wikitext', '<ref>x</ref>'),
    ]
    assert pages[0].is_article()


def test_parse_text_stream():
    """テキストストリームでも同じ結果。"""
    pages = list(parse(io.StringIO(DUMP)))
    assert [p.title for p in pages] == ['alpha', 'T&T']


def test_parse_small_chunks_same_result():
    """チャンクサイズに依存しない。"""
    data = DUMP.encode('utf-8')
    assert list(parse(io.BytesIO(data), chunk_size=7)) == list(parse(io.BytesIO(data)))


def test_parse_multibyte_text():
    """マルチバイト文字がチャンク境界をまたいでも正しく読める。"""
    text = '日本語の本文' * 50
    data = (HEADER + page_xml('日本', 0, text) + '</mediawiki>').encode('utf-8')
    page = next(parse(io.BytesIO(data), chunk_size=5))
    assert page.text == text
    assert page.title == '日本'


def test_parse_cdata_section_text():
    """<text> の CDATA セクションはそのまま本文になる。"""
    data = HEADER + page_xml('a', 0, '<![CDATA[x &amp; <y>]]>') + '</mediawiki>'
    assert next(parse(io.StringIO(data))).text == 'x &amp; <y>'


def test_parse_empty_text_element():
    """<text /> は空文字の本文。"""
    data = (
        HEADER + '<page><title>a</title><ns>0</ns><revision><text bytes="0" />'
        '</revision></page></mediawiki>'
    )
    page = next(parse(io.StringIO(data)))
    assert page.text == ''
    assert page.format is None and page.model is None


def test_parse_duplicate_revision():
    """複数リビジョンのページで DuplicateRevisionError。前のページは有効。"""
    two = (
        '<page><title>b</title><ns>0</ns>'
        '<revision><text>1</text></revision><revision><text>2</text></revision></page>'
    )
    parser = parse(io.StringIO(HEADER + page_xml('a', 0, 'x') + two + '</mediawiki>'))
    assert next(parser).title == 'a'
    with pytest.raises(DuplicateRevisionError):
        next(parser)
    assert list(parser) == []


def test_parse_truncated_input_is_unexpected_eof():
    """</page> の前で切れた入力は UnexpectedEofError。"""
    data = HEADER + page_xml('a', 0, 'x') + '<page><title>b</title><ns>0</ns><revision><text>abc'
    parser = parse(io.StringIO(data))
    assert next(parser).title == 'a'
    with pytest.raises(UnexpectedEofError):
        next(parser)


def test_parse_truncated_after_page_ends_cleanly():
    """</mediawiki> が無くてもページの途中でなければ正常終了。"""
    pages = list(parse(io.StringIO(HEADER + page_xml('a', 0, 'x'))))
    assert [p.title for p in pages] == ['a']


def test_parse_malformed_later_content_keeps_earlier_pages():
    """後ろの不正な XML は、それより前に返したページに影響しない。"""
    data = HEADER + page_xml('a', 0, 'x') + '<page><title>b</title></pag></mediawiki>'
    parser = parse(io.BytesIO(data.encode('utf-8')))
    assert next(parser).title == 'a'
    with pytest.raises(MalformedXmlError) as exc_info:
        next(parser)
    assert exc_info.value.position is not None
    with pytest.raises(StopIteration):
        next(parser)


def test_parse_early_stop_does_not_read_rest():
    """1 件目で読むのをやめれば、残りのストリームは読まれない。"""
    first = HEADER + '<page><title>a</title><ns>0</ns><revision><text>x</text></revision></page>'
    rest = page_xml('b', 0, 'y' * 100) * 1000 + '</mediawiki>'
    data = (first + rest).encode('utf-8')
    stream = CountingStream(data)
    parser = parse(stream, chunk_size=256)
    assert next(parser).title == 'a'
    assert stream.consumed <= 256
    assert stream.consumed < len(data)


def test_parse_not_mediawiki_root():
    """ルートが <mediawiki> でない XML はエラー。"""
    from wiki_dump_stream.errors import StructuralMismatchError
    with pytest.raises(StructuralMismatchError):
        next(parse(io.StringIO('<html><body /></html>')))


class FailingStream(io.BytesIO):
    """fail_at 回目の read で OSError を送出する。"""

    def __init__(self, data, fail_at):
        super().__init__(data)
        self.fail_at = fail_at
        self.reads = 0

    def read(self, size=-1):
        self.reads += 1
        if self.reads >= self.fail_at:
            raise OSError('read failed')
        return super().read(size)


def test_parse_read_error_is_terminal_once():
    """読込エラーは 1 回だけ送出し、その後は StopIteration（EOF エラーを重ねない）。"""
    from wiki_dump_stream.parser import STATE_ERROR
    parser = parse(FailingStream(DUMP.encode('utf-8'), fail_at=2), chunk_size=64)
    with pytest.raises(OSError, match='read failed'):
        next(parser)
    assert parser.state == STATE_ERROR
    with pytest.raises(StopIteration):
        next(parser)
    with pytest.raises(StopIteration):
        next(parser)
