"""
Service - Async operation surface and command-line entry point.

Scans are CPU and I/O heavy (archive inflation, pattern matching,
subprocesses), so every blocking operation runs on a worker thread while
the caller's event loop stays responsive. Reads are cheap and run inline.
"""

import argparse
import asyncio
import json
import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import List, Optional

from .config import IndexerConfig, get_config
from .errors import IndexingError, MessageError, translate_error
from .models import IndexState, ScanSummary, SearchResponse
from .progress import ProgressCallback
from .state import IndexStateMachine


logger = logging.getLogger(__name__)


class IndexService:
    """
    Command boundary over the IndexStateMachine.

    Usage:
        service = IndexService(config)
        await service.update_directories(["/Users/me/Decks"])
        summary = await service.rescan()
        response = await service.search_index("revenue")
    """

    def __init__(
        self,
        config: Optional[IndexerConfig] = None,
        progress: Optional[ProgressCallback] = None,
        machine: Optional[IndexStateMachine] = None,
    ):
        self.config = config or get_config()
        self.machine = machine or IndexStateMachine(self.config, progress=progress)
        self._executor: ThreadPoolExecutor | None = None

    def _get_executor(self) -> ThreadPoolExecutor:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="scanner")
        return self._executor

    async def _run(self, func, *args):
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(self._get_executor(), func, *args)
        except IndexingError:
            raise
        except Exception as e:
            raise translate_error(e) from e

    def fetch_state(self) -> IndexState:
        return self.machine.get_state()

    async def update_directories(self, directories: List[str]) -> ScanSummary:
        return await self._run(self.machine.set_directories, directories)

    async def rescan(self) -> ScanSummary:
        return await self._run(self.machine.full_rescan)

    async def rescan_directory(self, directory: str) -> ScanSummary:
        return await self._run(self.machine.rescan_directory, directory)

    def search_index(self, query: Optional[str] = None) -> SearchResponse:
        return self.machine.search((query or "").strip())

    def resolve_item_path(self, item_id: str) -> Path:
        """
        Path of an indexed document, for handing to an external opener.

        Raises:
            MessageError: Unknown id, or the file no longer exists
        """
        item = self.machine.find_item(item_id)
        if item is None:
            raise MessageError("Slide deck not found")
        path = Path(item.path)
        if not path.exists():
            raise MessageError("Slide deck path no longer exists")
        return path

    async def clear_cache(self) -> ScanSummary:
        return await self._run(self.machine.clear_cache)

    def close(self):
        """Shutdown the worker thread."""
        if self._executor:
            self._executor.shutdown(wait=True)
            self._executor = None


def _print_summary(summary: ScanSummary) -> None:
    print(json.dumps(summary.to_dict(), indent=2))
    for message in summary.error_messages:
        logger.warning(message)


def main():
    """CLI entry point."""
    parser = argparse.ArgumentParser(description="Slide deck indexer")
    parser.add_argument("--state-path", help="Path to the index state document")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")

    commands = parser.add_subparsers(dest="command", required=True)
    commands.add_parser("state", help="Show directories, counts and warnings")
    dirs = commands.add_parser("dirs", help="Replace the linked directory list")
    dirs.add_argument("directories", nargs="*")
    rescan = commands.add_parser("rescan", help="Rescan all directories, or one")
    rescan.add_argument("directory", nargs="?")
    search = commands.add_parser("search", help="Search the index")
    search.add_argument("query", nargs="*")
    open_cmd = commands.add_parser("open", help="Print the path of an item id")
    open_cmd.add_argument("id")
    commands.add_parser("clear", help="Drop all indexed items")

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="[%(levelname)s] %(name)s: %(message)s"
    )

    config = IndexerConfig.from_env()
    if args.state_path:
        config.state_path = Path(args.state_path).expanduser().resolve()

    def _on_progress(event):
        if event.status:
            logger.info(f"{event.status}: {event.path}")

    async def _main() -> int:
        service = IndexService(config, progress=_on_progress)
        try:
            if args.command == "state":
                state = service.fetch_state()
                print(json.dumps({
                    "directories": state.directories,
                    "itemCount": len(state.items),
                    "lastIndexedAtMillis": state.last_indexed_at_millis,
                    "warnings": state.warnings,
                }, indent=2))
            elif args.command == "dirs":
                _print_summary(await service.update_directories(args.directories))
            elif args.command == "rescan":
                if args.directory:
                    _print_summary(await service.rescan_directory(args.directory))
                else:
                    _print_summary(await service.rescan())
            elif args.command == "search":
                response = service.search_index(" ".join(args.query))
                for item in response.items:
                    print(f"{item.id}  {item.kind.value:<4}  {item.path}")
                    if item.snippet:
                        print(f"    {item.snippet}")
                print(f"{response.total} result(s)")
            elif args.command == "open":
                print(service.resolve_item_path(args.id))
            elif args.command == "clear":
                _print_summary(await service.clear_cache())
        except IndexingError as e:
            logger.error(str(e))
            return 1
        finally:
            service.close()
        return 0

    raise SystemExit(asyncio.run(_main()))


if __name__ == "__main__":
    main()
