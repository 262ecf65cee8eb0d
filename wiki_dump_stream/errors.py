"""
ダンプ解析のエラー種別。どれもシーケンスにとって終端で、パーサは 1 回だけ送出する。
"""


class DumpError(Exception):
    """ダンプ解析エラーの基底。position はソース上のバイト位置（不明なら None）。"""

    def __init__(self, message: str, position: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.position = position

    def __str__(self) -> str:
        if self.position is None:
            return self.message
        return f'{self.message} (position {self.position})'


class MalformedXmlError(DumpError):
    """トークナイザが報告した XML の不正、または不正な実体参照・整数でない <ns>。"""


class DuplicateRevisionError(DumpError):
    """1 つの <page> に <revision> が 2 つ以上ある（複数リビジョンのダンプは非対応）。"""


class MissingFieldError(DumpError):
    """</page> の時点で必須フィールド（title / ns / revision / text）が欠けている。"""

    def __init__(self, field: str, position: int | None = None) -> None:
        super().__init__(f'<page> の必須要素 <{field}> がありません', position)
        self.field = field


class UnexpectedEofError(DumpError):
    """<page> や <revision> が開いたまま入力が終わった。"""


class StructuralMismatchError(DumpError):
    """状態機械が解釈できない順序でイベントが来た（対応しない終了タグなど）。"""
