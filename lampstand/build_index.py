from __future__ import annotations

import argparse
import logging
import sys
import threading
from concurrent.futures import FIRST_COMPLETED, Future, ProcessPoolExecutor, wait
from pathlib import Path
from typing import Dict, Iterator, Mapping, Optional, Sequence, Tuple

from dotenv import load_dotenv
from tqdm import tqdm

from .config import Settings, configure_logging
from .errors import LampstandError
from .utils.indexing import InvertedIndex, build_from_records, cache_paths
from .utils.loaders import discover_translations, load_corpus
from .utils.normalize import Normalizer
from .utils.scoring import DEFAULT_B, DEFAULT_K1
from .utils.types import Verse

logger = logging.getLogger(__name__)


def _cancelled(cancel: Optional[threading.Event]) -> bool:
    return cancel is not None and cancel.is_set()


def build_indexes(
    corpora: Mapping[str, Sequence[Verse]],
    normalizer: Optional[Normalizer] = None,
    *,
    k1: float = DEFAULT_K1,
    b: float = DEFAULT_B,
    workers: int = 1,
    cancel: Optional[threading.Event] = None,
    progress: bool = True,
) -> Dict[str, InvertedIndex]:
    """
    Build one index per translation.

    Translations are independent; with workers > 1 they are built in a
    process pool. Once `cancel` is set no further translation is started,
    builds already running finish, and only completed indexes are
    returned (in input order).
    """
    if workers < 1:
        raise ValueError("workers must be >= 1")
    normalizer = normalizer or Normalizer()
    jobs = [(t.lower(), list(v)) for t, v in corpora.items()]
    built: Dict[str, InvertedIndex] = {}

    with tqdm(total=len(jobs), desc="Building indexes", unit="translation", disable=not progress) as bar:
        if workers == 1:
            for translation, verses in jobs:
                if _cancelled(cancel):
                    break
                bundle = build_from_records(translation, verses, normalizer, k1, b)
                built[translation] = InvertedIndex(bundle)
                bar.update(1)
        else:
            queue: Iterator[Tuple[str, list]] = iter(jobs)
            with ProcessPoolExecutor(max_workers=workers) as pool:
                running: Dict[Future, str] = {}

                def submit_next() -> None:
                    if _cancelled(cancel):
                        return
                    job = next(queue, None)
                    if job is not None:
                        translation, verses = job
                        running[pool.submit(build_from_records, translation, verses, normalizer, k1, b)] = translation

                for _ in range(workers):
                    submit_next()
                while running:
                    done, _ = wait(running, return_when=FIRST_COMPLETED)
                    for future in done:
                        translation = running.pop(future)
                        built[translation] = InvertedIndex(future.result())
                        bar.update(1)
                        submit_next()

    if len(built) < len(jobs):
        skipped = [t for t, _ in jobs if t not in built]
        logger.warning("Index build cancelled; skipped %s", ", ".join(skipped))
    logger.info("Built %d of %d translation indexes", len(built), len(jobs))
    return {t: built[t] for t, _ in jobs if t in built}


def main() -> None:
    load_dotenv()
    ap = argparse.ArgumentParser(description="Build and cache lampstand search indexes.")
    ap.add_argument("translations", nargs="*", help="Translation ids to build (default: all found).")
    ap.add_argument("--data_dir", default=None, help="Directory of .dat/.json corpus files.")
    ap.add_argument("--cache_dir", default=None, help="Where to write index artifacts.")
    ap.add_argument("--workers", type=int, default=1)
    args = ap.parse_args()

    try:
        settings = Settings.from_env()
    except LampstandError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    configure_logging(settings.log_level)

    data_dir = Path(args.data_dir) if args.data_dir else settings.data_dir
    cache_dir = Path(args.cache_dir) if args.cache_dir else settings.cache_dir
    found = discover_translations(data_dir)
    wanted = [t.lower() for t in args.translations] or list(found)
    missing = [t for t in wanted if t not in found]
    if missing:
        print(f"Error: no corpus for {', '.join(missing)} in {data_dir}", file=sys.stderr)
        sys.exit(1)

    try:
        corpora = {t: load_corpus(found[t]) for t in wanted}
        indexes = build_indexes(
            corpora,
            settings.normalizer,
            k1=settings.k1,
            b=settings.b,
            workers=args.workers,
        )
    except LampstandError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    print("Built index artifacts successfully:")
    for translation, index in indexes.items():
        index_path, meta_path = cache_paths(cache_dir, translation)
        index.save(index_path=index_path, meta_path=meta_path)
        print(f"- {index_path} ({index.verse_count} verses)")


if __name__ == "__main__":
    main()
