"""
CLI helper to import .txt/.md files into the text store.

Usage:
    TEXTUS_STORE_BACKEND=sql python scripts/import_text.py path/to/file.txt [more files or directories]
"""

import asyncio
import sys
from pathlib import Path
from typing import Iterable, List, Tuple

import structlog

from textus.config import settings
from textus.datastore.factory import datastore
from textus.services.importer import text_importer

logger = structlog.get_logger()

SUPPORTED_EXTENSIONS = {".txt", ".md"}


def collect_files(paths: Iterable[Path]) -> List[Path]:
    files = []
    for path in paths:
        candidates = path.rglob("*") if path.is_dir() else [path]
        for candidate in candidates:
            if candidate.is_file() and candidate.suffix.lower() in SUPPORTED_EXTENSIONS:
                files.append(candidate)
    return sorted(files)


async def import_files(files: List[Path]) -> List[Tuple[Path, str]]:
    await datastore.create_index(settings.store_index)
    imported = []
    for path in files:
        content = path.read_text(encoding="utf-8")
        text_id = await text_importer.import_text(
            {"title": path.stem, "source": str(path)},
            [],
            [],
            [{"sequence": 0, "text": content}],
        )
        logger.info("document_imported", file=path.name, text_id=text_id)
        imported.append((path, text_id))
    return imported


def main(argv: List[str]) -> int:
    files = collect_files(Path(arg) for arg in argv)
    if not files:
        logger.warning("no_documents_found", paths=argv)
        return 1
    imported = asyncio.run(import_files(files))
    for path, text_id in imported:
        print(f"{text_id}\t{path}")
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
