"""
MediaWiki 名前空間の番号と列挙の対応表。
表にない番号は CustomNamespace(code) として保持する（独自名前空間を持つ wiki 向け）。
"""

import enum
from typing import NamedTuple, Union


class Namespace(enum.IntEnum):
    """既知の名前空間番号。"""

    MEDIA = -2
    SPECIAL = -1
    MAIN = 0
    TALK = 1
    USER = 2
    USER_TALK = 3
    PROJECT = 4
    PROJECT_TALK = 5
    FILE = 6
    FILE_TALK = 7
    MEDIAWIKI = 8
    MEDIAWIKI_TALK = 9
    TEMPLATE = 10
    TEMPLATE_TALK = 11
    HELP = 12
    HELP_TALK = 13
    CATEGORY = 14
    CATEGORY_TALK = 15
    PORTAL = 100
    PORTAL_TALK = 101
    DRAFT = 118
    DRAFT_TALK = 119
    TIMED_TEXT = 710
    TIMED_TEXT_TALK = 711
    MODULE = 828
    MODULE_TALK = 829
    GADGET = 2300
    GADGET_TALK = 2301
    GADGET_DEFINITION = 2302
    GADGET_DEFINITION_TALK = 2303

    @property
    def code(self) -> int:
        return int(self)


class CustomNamespace(NamedTuple):
    """表にない名前空間番号。"""

    code: int


NamespaceLike = Union[Namespace, CustomNamespace]

_BY_CODE: dict[int, Namespace] = {ns.value: ns for ns in Namespace}


def namespace_from_code(code: int) -> NamespaceLike:
    """番号を列挙に変換する。表にない番号は CustomNamespace。"""
    ns = _BY_CODE.get(code)
    if ns is None:
        return CustomNamespace(code)
    return ns


def is_talk(ns: NamespaceLike) -> bool:
    """ノート（トーク）名前空間なら True。0 以上の奇数が該当。"""
    return ns.code >= 0 and ns.code % 2 == 1


def subject_of(ns: NamespaceLike) -> NamespaceLike:
    """ノート名前空間に対応する本体の名前空間。本体・特殊名前空間はそのまま返す。"""
    if not is_talk(ns):
        return ns
    return namespace_from_code(ns.code & ~1)


def talk_of(ns: NamespaceLike) -> NamespaceLike | None:
    """
    本体に対応するノート名前空間。ノートならそのまま返す。
    Media / Special など負の番号はノートを持たないので None。
    """
    if ns.code < 0:
        return None
    return namespace_from_code(ns.code | 1)
