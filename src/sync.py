"""Chain-to-index synchronization engine.

Catches the search index up with the chain one height at a time:

1. Read the last indexed height (empty index => genesis) and the chain head
2. For each height from there up to (excluding) the head:
   - Fetch the block with full transactions
   - Build block, transaction and address candidate documents
   - Create the block document (an existing one is fine)
   - Bulk-create transaction documents
   - Bulk-create address documents for addresses not yet indexed
3. Sleep and start over

Heights are processed strictly in order and every failure other than a
create conflict stops the process, so the index always holds every height
below the one being written.

Usage:
    python -m src.sync          # run forever
    python -m src.sync --once   # single catch-up pass with a progress bar
"""

import asyncio
import sys
from argparse import ArgumentParser
from collections.abc import Callable
from dataclasses import dataclass

from rich.console import Console

from src.data.builder import BuiltBlock, DocumentBuilder
from src.data.chain import ChainSource, RpcChainSource
from src.data.dedup import AddressDeduplicator
from src.data.index import ElasticsearchIndexStore, IndexStore
from src.helpers.config import (
    get_elasticsearch_auth,
    get_elasticsearch_url,
    get_eth_rpc_url,
    get_index_timeout,
    get_receipt_concurrency,
    get_rpc_timeout,
    get_sync_interval,
)
from src.helpers.constants import (
    ADDRESS_INDEX,
    GENESIS_HEIGHT,
    SYNC_INTERVAL,
    TRANSACTION_INDEX,
)
from src.helpers.errors import (
    ChainInconsistencyError,
    ChainNotFoundError,
    DocumentConflictError,
)
from src.helpers.logging import get_logger
from src.helpers.progress import track_progress


logger = get_logger(__name__)


@dataclass
class HeightResult:
    """What was written for one height."""

    height: int
    block_created: bool
    transactions: int
    addresses: int


@dataclass
class CatchUpResult:
    """Summary of one catch-up pass over ``[start, head)``."""

    start: int
    head: int
    heights: int = 0
    transactions: int = 0
    addresses: int = 0

    @property
    def caught_up(self) -> bool:
        return self.start + self.heights >= self.head


class SyncEngine:
    """Sequential catch-up loop from the chain into the search index."""

    def __init__(
        self,
        chain: ChainSource,
        store: IndexStore,
        *,
        builder: DocumentBuilder | None = None,
        deduplicator: AddressDeduplicator | None = None,
        sync_interval: float = SYNC_INTERVAL,
        on_height: Callable[[HeightResult], None] | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            chain: Chain data source
            store: Search index
            builder: Document builder (defaults to one reading from ``chain``)
            deduplicator: Address resolver (defaults to one reading ``store``)
            sync_interval: Seconds to wait after a pass before the next one
            on_height: Called after every fully written height
        """
        self.chain = chain
        self.store = store
        self.builder = builder or DocumentBuilder(chain)
        self.deduplicator = deduplicator or AddressDeduplicator(store)
        self.sync_interval = sync_interval
        self.on_height = on_height

    async def plan(self) -> tuple[int, int]:
        """Return ``(start, head)`` for the next pass.

        The last indexed height itself is replayed, which completes a height
        whose block document was written before a previous run stopped.
        """
        latest = await self.store.latest_indexed_height()
        start = GENESIS_HEIGHT if latest is None else latest
        head = await self.chain.latest_height()
        return start, head

    async def _fetch_block(self, height: int, head: int) -> BuiltBlock:
        try:
            raw_block = await self.chain.block_at(height)
        except ChainNotFoundError as e:
            raise ChainInconsistencyError(height, head) from e
        return await self.builder.build(raw_block)

    async def index_height(self, height: int, head: int) -> HeightResult:
        """Fetch, build and write every document for one height.

        Raises:
            ChainInconsistencyError: If the block is missing below the head
            ExplorerError: For any other fetch, build or write failure
        """
        built = await self._fetch_block(height, head)

        block_created = True
        try:
            await self.store.create_block(built.block)
        except DocumentConflictError:
            block_created = False
            logger.info("Block %d already indexed, replaying its documents", height)

        if built.transactions:
            await self.store.bulk_create(TRANSACTION_INDEX, built.transactions)

        address_docs = await self.deduplicator.resolve(built.addresses, built.contracts)
        if address_docs:
            await self.store.bulk_create(ADDRESS_INDEX, address_docs)

        return HeightResult(
            height=height,
            block_created=block_created,
            transactions=len(built.transactions),
            addresses=len(address_docs),
        )

    async def catch_up(self) -> CatchUpResult:
        """Index every height from the last indexed one up to the current head.

        The head is read once; blocks produced during the pass are picked up
        by the next pass.
        """
        start, head = await self.plan()
        result = CatchUpResult(start=start, head=head)
        if start >= head:
            logger.debug("Index is at height %d, chain head %d: nothing to do", start, head)
            return result

        logger.info("Catching up from height %d to %d", start, head - 1)
        for height in range(start, head):
            height_result = await self.index_height(height, head)
            result.heights += 1
            result.transactions += height_result.transactions
            result.addresses += height_result.addresses
            logger.info(
                "%s block %d (%d transactions, %d new addresses)",
                "Indexed" if height_result.block_created else "Completed replayed",
                height,
                height_result.transactions,
                height_result.addresses,
            )
            if self.on_height is not None:
                self.on_height(height_result)

        logger.info(
            "Caught up to height %d: %d blocks, %d transactions, %d new addresses",
            head - 1,
            result.heights,
            result.transactions,
            result.addresses,
        )
        return result

    async def run(self) -> None:
        """Alternate catch-up passes and idle waits until an error escapes."""
        while True:
            await self.catch_up()
            await asyncio.sleep(self.sync_interval)


async def main(once: bool = False) -> None:
    """Main entry point.

    Args:
        once: Run a single catch-up pass with a progress bar instead of
            polling forever
    """
    chain: RpcChainSource | None = None
    store: ElasticsearchIndexStore | None = None
    try:
        chain = RpcChainSource(get_eth_rpc_url(), timeout=get_rpc_timeout())
        store = ElasticsearchIndexStore(
            get_elasticsearch_url(),
            timeout=get_index_timeout(),
            auth=get_elasticsearch_auth(),
        )
        engine = SyncEngine(
            chain,
            store,
            builder=DocumentBuilder(chain, receipt_concurrency=get_receipt_concurrency()),
            sync_interval=get_sync_interval(),
        )

        await store.ensure_indices()

        if not once:
            logger.info("Starting sync loop (interval %.1fs)", engine.sync_interval)
            await engine.run()
            return

        console = Console()
        start, head = await engine.plan()
        with track_progress(
            "Indexing blocks", total=max(head - start, 0), console=console
        ) as (progress, task):
            engine.on_height = lambda _: progress.update(task, advance=1)
            result = await engine.catch_up()

        if not result.heights:
            console.print(f"Index already at chain head {result.head}")
            return
        console.print(
            f"Indexed heights {result.start}..{result.head - 1}: "
            f"{result.heights} blocks, {result.transactions} transactions, "
            f"{result.addresses} new addresses"
        )
    finally:
        if chain is not None:
            await chain.aclose()
        if store is not None:
            await store.aclose()


def cli() -> None:
    """Console script entry point."""
    parser = ArgumentParser(description="Index chain blocks into the search index")
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single catch-up pass and exit",
    )
    args = parser.parse_args()

    try:
        asyncio.run(main(once=args.once))
    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt, exiting...")
    except Exception:
        logger.exception("Fatal error, stopping sync")
        sys.exit(1)


if __name__ == "__main__":
    cli()
