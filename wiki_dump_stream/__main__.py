"""
メインエントリポイント: ダンプを開き、ページをストリームしてフィルタし、pages.jsonl に書き出す。
"""

import json
import sys
from pathlib import Path
from typing import IO

from wiki_dump_stream import config
from wiki_dump_stream.dump_file import find_pages_articles
from wiki_dump_stream.errors import DumpError
from wiki_dump_stream.log import format_elapsed, log, log_progress, Timer
from wiki_dump_stream.parser import Page
from wiki_dump_stream.xml_stream import stream_pages


OUTPUT_FILENAME = 'pages.jsonl'


def page_to_record(page: Page) -> dict:
    """Page を JSON 出力用の dict にする。名前空間は番号で出す。"""
    return {
        'title': page.title,
        'ns': page.namespace.code,
        'format': page.format,
        'model': page.model,
        'text': page.text,
    }


def wanted(page: Page, namespaces: set[int] | None, articles_only: bool) -> bool:
    """フィルタ条件（名前空間・通常の記事のみ）に合うページなら True。"""
    if namespaces is not None and page.namespace.code not in namespaces:
        return False
    if articles_only and not page.is_article():
        return False
    return True


def resolve_input(args) -> Path:
    """--input があればそれ、無ければ --data-dir から pages-articles を探す。"""
    if args.input is not None:
        return Path(args.input)
    return find_pages_articles(args.data_dir)


def run(args) -> int:
    """パイプライン全体を実行し、終了コードを返す。"""
    namespaces = set(args.ns) if args.ns else None
    out: IO[str] | None = None
    out_path: Path | None = None

    log('Starting wiki_dump_stream')
    with Timer() as total_timer:
        try:
            xml_path = resolve_input(args)
        except FileNotFoundError as e:
            log(str(e))
            return 1
        log(f'  input: {xml_path}')
        if namespaces is not None:
            log(f'  ns: {sorted(namespaces)}')
        if args.articles_only:
            log('  articles only')

        if args.output_dir is not None:
            output_dir = Path(args.output_dir)
            output_dir.mkdir(parents=True, exist_ok=True)
            out_path = output_dir / OUTPUT_FILENAME
            out = open(out_path, 'w', encoding='utf-8')

        read = 0
        written = 0
        status = 0
        log_progress('xml: streaming pages', elapsed=total_timer.elapsed)
        try:
            for page in stream_pages(xml_path, chunk_size=args.chunk_size):
                read += 1
                if args.progress_every > 0 and read % args.progress_every == 0:
                    log_progress('xml: pages read', count=read, elapsed=total_timer.elapsed)
                if not wanted(page, namespaces, args.articles_only):
                    continue
                if out is not None:
                    out.write(json.dumps(page_to_record(page), ensure_ascii=False))
                    out.write('\n')
                written += 1
                if args.limit is not None and written >= args.limit:
                    log(f'  limit に達したため読込を終了: {args.limit}')
                    break
        except DumpError as e:
            log(f'error: {e}')
            status = 1
        except FileNotFoundError as e:
            log(str(e))
            status = 1
        finally:
            if out is not None:
                out.close()

        log_progress('xml: done', count=read, elapsed=total_timer.elapsed)

    log(f'  読込ページ数: {read}')
    log(f'  出力ページ数: {written}')
    if out_path is not None:
        log(f'  {OUTPUT_FILENAME}: {out_path}')
    log(f'  実行時間: {format_elapsed(total_timer.elapsed)} ({total_timer.elapsed:.1f}秒)')
    return status


def main(argv: list[str] | None = None) -> None:
    """エントリポイント。"""
    args = config.parse_args(argv)
    sys.exit(run(args))


if __name__ == '__main__':
    main()
