"""
MediaWiki エクスポート XML の構造イベントからページを組み立てる状態機械。

対応するのは 1 ページ 1 リビジョンのダンプのみ（pages-articles や Special:Export の「最新版のみ」）。
扱う要素は <mediawiki><page><ns/><title/><revision><format/><model/><text/></revision></page>… だけで、
<siteinfo> を含むそれ以外の要素は中身を解釈せず深さだけ数えて読み飛ばす。

状態:
    start        <mediawiki> の前
    in_root      <page> を待つ
    in_page      <page> の中
    in_revision  <revision> の中
    in_leaf      title / ns / format / model / text の文字データを貯める
    skipping     未知の部分木を読み飛ばす（深さカウンタと戻り先状態を持つ）
    error / end  終端
"""

import re
from typing import IO, Iterable, Iterator, NamedTuple

from wiki_dump_stream.errors import (
    DuplicateRevisionError,
    MalformedXmlError,
    MissingFieldError,
    StructuralMismatchError,
    UnexpectedEofError,
)
from wiki_dump_stream.namespace import Namespace, NamespaceLike, namespace_from_code
from wiki_dump_stream.xml_events import (
    CDATA,
    DEFAULT_CHUNK_SIZE,
    END,
    EOF,
    ERROR,
    START,
    TEXT,
    ExpatEventSource,
    XmlEvent,
    decode_entities,
)


STATE_START = 'start'
STATE_IN_ROOT = 'in_root'
STATE_IN_PAGE = 'in_page'
STATE_IN_REVISION = 'in_revision'
STATE_IN_LEAF = 'in_leaf'
STATE_SKIPPING = 'skipping'
STATE_ERROR = 'error'
STATE_END = 'end'

_TERMINAL_STATES = (STATE_ERROR, STATE_END)

REVISION_LEAVES = ('format', 'model', 'text')

# 通常の記事の format / model
ARTICLE_FORMAT = 'text/x-wiki'
ARTICLE_MODEL = 'wikitext'

_NS_RE = re.compile(r'\s*([+-]?[0-9]+)\s*')


class Page(NamedTuple):
    """
    <page> 1 件。format / model はダンプに無ければ None（空文字とは区別する）。
    text はリビジョン本文そのままで、ウィキ記法は解釈しない。
    """

    title: str
    namespace: NamespaceLike
    format: str | None
    model: str | None
    text: str

    def is_article(self) -> bool:
        """標準名前空間の通常の記事（text/x-wiki, wikitext）なら True。"""
        return (
            self.namespace is Namespace.MAIN
            and self.format == ARTICLE_FORMAT
            and self.model == ARTICLE_MODEL
        )


class _PendingPage:
    __slots__ = ('title', 'namespace', 'revision_seen', 'format', 'model', 'text')

    def __init__(self) -> None:
        self.title: str | None = None
        self.namespace: NamespaceLike | None = None
        self.revision_seen = False
        self.format: str | None = None
        self.model: str | None = None
        self.text: str | None = None


class _PendingRevision:
    __slots__ = ('format', 'model', 'text')

    def __init__(self) -> None:
        self.format: str | None = None
        self.model: str | None = None
        self.text: str | None = None


def _parse_namespace(value: str, position: int | None) -> NamespaceLike:
    m = _NS_RE.fullmatch(value)
    if m is None:
        raise MalformedXmlError(f'<ns> が整数ではありません: {value!r}', position)
    return namespace_from_code(int(m.group(1)))


class DumpParser:
    """
    XmlEvent の列を受け取り、ページを 1 件ずつ返すイテレータ。

    next() は </page> が閉じて検証済みの Page を返すか、終端エラー（DumpError）を 1 回だけ送出する。
    エラーの後と、入力が正常に終わった後は StopIteration。
    呼び出し側はいつでも読むのをやめてよく、その場合残りのイベントは取り出されない。
    """

    def __init__(self, events: Iterable[XmlEvent]) -> None:
        self._events = iter(events)
        self._state = STATE_START
        self._page: _PendingPage | None = None
        self._revision: _PendingRevision | None = None
        self._leaf = ''
        self._leaf_return = ''
        self._buffer: list[str] = []
        self._skip_depth = 0
        self._skip_return = ''

    @property
    def state(self) -> str:
        return self._state

    def __iter__(self) -> Iterator[Page]:
        return self

    def __next__(self) -> Page:
        while self._state not in _TERMINAL_STATES:
            try:
                # EOF を出さずに尽きたイベント列は入力終端として扱う
                event = next(self._events, None) or XmlEvent(EOF)
                page = self._step(event)
            except Exception:
                # 読込エラー（OSError など）も終端。以後は StopIteration
                self._enter_error()
                raise
            if page is not None:
                return page
        raise StopIteration

    def _step(self, event: XmlEvent) -> Page | None:
        if event.kind == ERROR:
            raise MalformedXmlError(event.data or 'XML の解析に失敗しました', event.position)
        return self._TRANSITIONS[self._state](self, event)

    def _enter_error(self) -> None:
        self._state = STATE_ERROR
        self._page = None
        self._revision = None
        self._buffer = []

    def _skip(self, return_state: str) -> None:
        self._state = STATE_SKIPPING
        self._skip_depth = 1
        self._skip_return = return_state

    def _enter_leaf(self, name: str, current: object, return_state: str, position: int | None) -> None:
        if current is not None:
            raise StructuralMismatchError(f'<{name}> が重複しています', position)
        self._state = STATE_IN_LEAF
        self._leaf = name
        self._leaf_return = return_state
        self._buffer = []

    # ---- 状態ごとの遷移 ----

    def _step_start(self, event: XmlEvent) -> None:
        if event.kind == START and event.name == 'mediawiki':
            self._state = STATE_IN_ROOT
            return None
        if event.kind in (TEXT, CDATA) and not event.data.strip():
            return None
        raise StructuralMismatchError(f'<mediawiki> で始まっていません: {event.kind} {event.name}', event.position)

    def _step_in_root(self, event: XmlEvent) -> None:
        if event.kind == START:
            if event.name == 'page':
                self._page = _PendingPage()
                self._state = STATE_IN_PAGE
            else:
                self._skip(STATE_IN_ROOT)
        elif event.kind == END:
            if event.name != 'mediawiki':
                raise StructuralMismatchError(f'対応しない終了タグ </{event.name}>', event.position)
            self._state = STATE_END
        elif event.kind == EOF:
            self._state = STATE_END
        return None

    def _step_in_page(self, event: XmlEvent) -> Page | None:
        page = self._page
        if event.kind == START:
            if event.name == 'title':
                self._enter_leaf('title', page.title, STATE_IN_PAGE, event.position)
            elif event.name == 'ns':
                self._enter_leaf('ns', page.namespace, STATE_IN_PAGE, event.position)
            elif event.name == 'revision':
                if page.revision_seen:
                    raise DuplicateRevisionError(
                        '1 ページに <revision> が複数あります（複数リビジョンのダンプは非対応）',
                        event.position,
                    )
                page.revision_seen = True
                self._revision = _PendingRevision()
                self._state = STATE_IN_REVISION
            else:
                self._skip(STATE_IN_PAGE)
        elif event.kind == END:
            if event.name != 'page':
                raise StructuralMismatchError(f'<page> 内で対応しない終了タグ </{event.name}>', event.position)
            return self._finish_page(event.position)
        elif event.kind == EOF:
            raise UnexpectedEofError('<page> の途中で入力が終わりました', event.position)
        return None

    def _finish_page(self, position: int | None) -> Page:
        page = self._page
        if not page.title:
            raise MissingFieldError('title', position)
        if page.namespace is None:
            raise MissingFieldError('ns', position)
        if not page.revision_seen:
            raise MissingFieldError('revision', position)
        if page.text is None:
            raise MissingFieldError('text', position)
        self._page = None
        self._state = STATE_IN_ROOT
        return Page(
            title=page.title,
            namespace=page.namespace,
            format=page.format,
            model=page.model,
            text=page.text,
        )

    def _step_in_revision(self, event: XmlEvent) -> None:
        revision = self._revision
        if event.kind == START:
            if event.name in REVISION_LEAVES:
                self._enter_leaf(event.name, getattr(revision, event.name), STATE_IN_REVISION, event.position)
            else:
                self._skip(STATE_IN_REVISION)
        elif event.kind == END:
            if event.name != 'revision':
                raise StructuralMismatchError(f'<revision> 内で対応しない終了タグ </{event.name}>', event.position)
            page = self._page
            page.format = revision.format
            page.model = revision.model
            page.text = revision.text
            self._revision = None
            self._state = STATE_IN_PAGE
        elif event.kind == EOF:
            raise UnexpectedEofError('<revision> の途中で入力が終わりました', event.position)
        return None

    def _step_in_leaf(self, event: XmlEvent) -> None:
        if event.kind == TEXT:
            try:
                self._buffer.append(decode_entities(event.data))
            except MalformedXmlError as e:
                raise MalformedXmlError(e.message, event.position) from None
        elif event.kind == CDATA:
            self._buffer.append(event.data)
        elif event.kind == END:
            if event.name != self._leaf:
                raise StructuralMismatchError(
                    f'<{self._leaf}> 内で対応しない終了タグ </{event.name}>', event.position
                )
            value = ''.join(self._buffer)
            self._buffer = []
            self._assign_leaf(value, event.position)
            self._state = self._leaf_return
        elif event.kind == START:
            raise StructuralMismatchError(f'<{self._leaf}> の中に要素 <{event.name}> があります', event.position)
        elif event.kind == EOF:
            raise UnexpectedEofError(f'<{self._leaf}> の途中で入力が終わりました', event.position)
        return None

    def _assign_leaf(self, value: str, position: int | None) -> None:
        if self._leaf == 'title':
            self._page.title = value
        elif self._leaf == 'ns':
            self._page.namespace = _parse_namespace(value, position)
        else:
            setattr(self._revision, self._leaf, value)

    def _step_skipping(self, event: XmlEvent) -> None:
        if event.kind == START:
            self._skip_depth += 1
        elif event.kind == END:
            self._skip_depth -= 1
            if self._skip_depth == 0:
                self._state = self._skip_return
        elif event.kind == EOF:
            raise UnexpectedEofError('読み飛ばし中の要素の途中で入力が終わりました', event.position)
        return None

    _TRANSITIONS = {
        STATE_START: _step_start,
        STATE_IN_ROOT: _step_in_root,
        STATE_IN_PAGE: _step_in_page,
        STATE_IN_REVISION: _step_in_revision,
        STATE_IN_LEAF: _step_in_leaf,
        STATE_SKIPPING: _step_skipping,
    }


def parse(stream: IO, chunk_size: int = DEFAULT_CHUNK_SIZE) -> DumpParser:
    """
    展開済みのバイト列（またはテキスト）ストリームをダンプとして解析するパーサを返す。
    圧縮の解除は呼び出し側で行う。
    """
    return DumpParser(ExpatEventSource(stream, chunk_size=chunk_size))
