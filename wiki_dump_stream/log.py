"""
進捗ログを stderr に出力する。
"""

import sys
import time


def log(msg: str) -> None:
    """メッセージを stderr に書き出す。"""
    print(msg, file=sys.stderr, flush=True)


def format_elapsed(seconds: float) -> str:
    """秒数を実行時間表示用に整形する（例: 1時間23分45秒、12分34秒）。"""
    if seconds < 0:
        return "0秒"
    s = int(round(seconds))
    if s < 60:
        return f"{s}秒"
    m, s = divmod(s, 60)
    if m < 60:
        return f"{m}分{s}秒"
    h, m = divmod(m, 60)
    return f"{h}時間{m}分{s}秒"


def log_progress(stage: str, count: int | None = None, elapsed: float | None = None) -> None:
    """
    進捗をログ出力: [stage] count=N elapsed=M.Ms。
    件数と経過秒数の両方があれば rate=R/s（1 秒あたりの件数）も付ける。
    """
    parts = [f"[{stage}]"]
    if count is not None:
        parts.append(f"count={count}")
    if elapsed is not None:
        parts.append(f"elapsed={elapsed:.1f}s")
        if count is not None and elapsed > 0:
            parts.append(f"rate={count / elapsed:.0f}/s")
    log(" ".join(parts))


class Timer:
    """経過時間を計測するコンテキストマネージャ。with を抜けた時点で計測を止める。"""

    def __init__(self) -> None:
        self.start: float = 0.0
        self.stop: float | None = None

    def __enter__(self) -> "Timer":
        self.start = time.perf_counter()
        self.stop = None
        return self

    def __exit__(self, *args: object) -> None:
        self.stop = time.perf_counter()

    @property
    def elapsed(self) -> float:
        end = self.stop if self.stop is not None else time.perf_counter()
        return end - self.start
