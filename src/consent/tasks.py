"""
Async work units.

File reads, parsing and rendering run in worker threads; document state is
only touched on the calling event loop.
"""

import asyncio
import logging
from datetime import datetime
from pathlib import Path
from typing import Callable

from .config import ConsentSettings
from .document import ConsentDocument
from .export import ExportConfiguration
from .render import render_document
from .signature import PersonName

logger = logging.getLogger(__name__)


async def parse_document_async(
    text: str,
    initial_name: PersonName | None = None,
    enable_custom_elements: bool = True,
    settings: ConsentSettings | None = None,
) -> ConsentDocument:
    """Parse markdown into a ConsentDocument off the event loop."""
    return await asyncio.to_thread(
        ConsentDocument,
        text,
        initial_name=initial_name,
        enable_custom_elements=enable_custom_elements,
        settings=settings,
    )


async def load_document(
    path: str | Path,
    initial_name: PersonName | None = None,
    enable_custom_elements: bool = True,
    settings: ConsentSettings | None = None,
) -> ConsentDocument:
    """Read and parse a consent document file off the event loop."""
    data = await asyncio.to_thread(Path(path).read_bytes)
    logger.debug(f"Read {len(data)} bytes from {path}")
    return await asyncio.to_thread(
        ConsentDocument.from_bytes,
        data,
        initial_name=initial_name,
        enable_custom_elements=enable_custom_elements,
        settings=settings,
    )


async def export_document_async(
    document: ConsentDocument,
    config: ExportConfiguration | None = None,
    clock: Callable[[], datetime] | None = None,
) -> bytes:
    """
    Export a document with rendering in a worker thread.

    is_exporting is set for the duration; a concurrent export of the same
    document raises ExportInProgressError.
    """
    config = config or ExportConfiguration.from_settings(document.settings)
    with document.exporting() as snapshot:
        return await asyncio.to_thread(render_document, snapshot, config, document.settings, clock)
