"""
XML の構造イベント（開始タグ・終了タグ・文字データ・入力終端・不正入力）をプル型で供給する。
トークナイザには標準ライブラリの expat を使い、ストリームはキューが空になったときだけ読む。
"""

import re
from collections import deque
from typing import IO, Iterator, NamedTuple, Union
from xml.parsers import expat

from wiki_dump_stream.errors import MalformedXmlError


START = 'start'
END = 'end'
TEXT = 'text'    # 実体参照を含みうる生テキスト。状態機械側でデコードする
CDATA = 'cdata'  # そのまま使う文字データ
EOF = 'eof'
ERROR = 'error'

DEFAULT_CHUNK_SIZE = 64 * 1024

# 最終チャンクでこれらが出たら「途中で切れた入力」とみなして EOF を流す
_TRUNCATION_ERRORS = frozenset(
    expat.errors.codes[message]
    for message in (
        expat.errors.XML_ERROR_NO_ELEMENTS,
        expat.errors.XML_ERROR_UNCLOSED_TOKEN,
        expat.errors.XML_ERROR_UNCLOSED_CDATA_SECTION,
        expat.errors.XML_ERROR_PARTIAL_CHAR,
    )
)

_PREDEFINED_ENTITIES = {
    'amp': '&',
    'lt': '<',
    'gt': '>',
    'quot': '"',
    'apos': "'",
}

# 参照として成立しない & は 3 グループとも None でマッチする
_REFERENCE_RE = re.compile(r'&(?:#x([0-9A-Fa-f]+);|#([0-9]+);|([A-Za-z_][\w.-]*);)?')


class XmlEvent(NamedTuple):
    """構造イベント 1 件。position はソース上のバイト位置（合成イベントでは None）。"""

    kind: str
    name: str = ''
    data: str = ''
    position: int | None = None


def _local_name(name: str) -> str:
    """名前空間 URI を除いたローカル名を返す。"""
    return name.rsplit('}', 1)[-1]


def _is_xml_char(code: int) -> bool:
    return (
        code in (0x9, 0xA, 0xD)
        or 0x20 <= code <= 0xD7FF
        or 0xE000 <= code <= 0xFFFD
        or 0x10000 <= code <= 0x10FFFF
    )


def _replace_reference(m: re.Match) -> str:
    hex_code, dec_code, name = m.groups()
    if name is not None:
        ch = _PREDEFINED_ENTITIES.get(name)
        if ch is None:
            raise MalformedXmlError(f'未定義の実体参照です: &{name};')
        return ch
    if hex_code is None and dec_code is None:
        raise MalformedXmlError('実体参照になっていない & があります')
    code = int(hex_code, 16) if hex_code is not None else int(dec_code)
    if not _is_xml_char(code):
        raise MalformedXmlError(f'XML で使えない文字参照です: {m.group(0)}')
    return chr(code)


def decode_entities(raw: str) -> str:
    """
    XML の実体参照（&amp; &lt; &gt; &quot; &apos;）と数値文字参照（&#NN; / &#xHH;）をデコードする。
    未定義の実体・単独の &・XML で許されない文字は MalformedXmlError。
    """
    if '&' not in raw:
        return raw
    return _REFERENCE_RE.sub(_replace_reference, raw)


class ExpatEventSource:
    """
    バイト列またはテキストのストリームを expat に少しずつ流し、XmlEvent を順に返す。
    expat は実体参照を展開済みで渡すため、文字データはすべて CDATA として流す。
    トークナイザのエラー時は、それまでに解析済みのイベントを返してから ERROR を 1 件返して終わる。
    """

    def __init__(self, stream: IO, chunk_size: int = DEFAULT_CHUNK_SIZE) -> None:
        if chunk_size < 1:
            raise ValueError(f'chunk_size は 1 以上: {chunk_size}')
        self._stream = stream
        self._chunk_size = chunk_size
        self._queue: deque[XmlEvent] = deque()
        self._parser = expat.ParserCreate(namespace_separator='}')
        self._parser.buffer_text = True
        self._parser.StartElementHandler = self._on_start
        self._parser.EndElementHandler = self._on_end
        self._parser.CharacterDataHandler = self._on_characters

    def _on_start(self, name: str, _attrs: dict) -> None:
        self._queue.append(XmlEvent(START, _local_name(name), position=self._parser.CurrentByteIndex))

    def _on_end(self, name: str) -> None:
        self._queue.append(XmlEvent(END, _local_name(name), position=self._parser.CurrentByteIndex))

    def _on_characters(self, data: str) -> None:
        self._queue.append(XmlEvent(CDATA, data=data, position=self._parser.CurrentByteIndex))

    def _feed(self) -> bool:
        """1 チャンク読んで expat に渡す。入力が終わった（またはエラーになった）ら True。"""
        chunk: Union[bytes, str] = self._stream.read(self._chunk_size)
        final = not chunk
        try:
            self._parser.Parse(chunk, final)
        except expat.ExpatError as e:
            position = self._parser.ErrorByteIndex
            if final and e.code in _TRUNCATION_ERRORS:
                self._queue.append(XmlEvent(EOF, position=position))
            else:
                self._queue.append(XmlEvent(ERROR, data=str(e), position=position))
            return True
        if final:
            self._queue.append(XmlEvent(EOF, position=self._parser.CurrentByteIndex))
        return final

    def __iter__(self) -> Iterator[XmlEvent]:
        done = False
        while not done:
            done = self._feed()
            while self._queue:
                yield self._queue.popleft()
