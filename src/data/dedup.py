"""Resolution of which referenced addresses still need an address document."""

from collections.abc import Iterable

from src.data.index import IndexStore
from src.data.models import AddressDocument, AddressKind
from src.helpers.constants import ADDRESS_INDEX
from src.helpers.logging import get_logger
from src.helpers.parsers import is_zero_address, normalize_address


logger = get_logger(__name__)


class AddressDeduplicator:
    """Filters a block's address candidates down to the ones not yet indexed.

    One existence lookup is made per block, whatever the transaction count.
    An address seen both as a plain reference and as a created contract is
    classified as a contract.
    """

    def __init__(self, store: IndexStore, index: str = ADDRESS_INDEX) -> None:
        self.store = store
        self.index = index

    async def resolve(
        self, addresses: Iterable[str], contracts: Iterable[str]
    ) -> list[AddressDocument]:
        """Return address documents to create, in order of first appearance.

        Args:
            addresses: Senders and recipients referenced by the block
            contracts: Contract addresses created by the block

        Returns:
            Documents for candidates absent from the address index
        """
        kinds: dict[str, AddressKind] = {}
        for raw, kind in [
            *((a, AddressKind.EXTERNALLY_OWNED) for a in addresses),
            *((c, AddressKind.CONTRACT) for c in contracts),
        ]:
            address = normalize_address(raw)
            if address is None or is_zero_address(address):
                continue
            if kind is AddressKind.CONTRACT or address not in kinds:
                kinds[address] = kind

        if not kinds:
            return []

        existing = await self.store.find_existing_ids(self.index, list(kinds))
        new_docs = [
            AddressDocument(address=address, kind=kind)
            for address, kind in kinds.items()
            if address not in existing
        ]

        logger.debug(
            "Address dedup: %d candidates, %d already indexed, %d new",
            len(kinds),
            len(existing),
            len(new_docs),
        )
        return new_docs


__all__ = ["AddressDeduplicator"]
