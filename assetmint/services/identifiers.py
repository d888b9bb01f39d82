"""
Identifier Issuance

Token ids, contract addresses and transaction hashes normally come from a
ledger. Nothing in this service talks to a chain, so they are issued locally
through a pluggable issuer; a chain-backed issuer can replace
SyntheticIdentifierIssuer without touching the orchestration code.
"""

import secrets
from typing import Protocol, runtime_checkable


@runtime_checkable
class IdentifierIssuer(Protocol):
    """Source of on-chain style identifiers for newly minted assets."""

    def issue_token_id(self) -> str: ...

    def issue_contract_address(self) -> str: ...

    def issue_transaction_hash(self) -> str: ...


class SyntheticIdentifierIssuer:
    """
    Random placeholder identifiers.

    token ids are decimal strings below TOKEN_ID_CEILING, contract addresses
    are 20-byte hex and transaction hashes 32-byte hex, both 0x-prefixed.
    Repeated calls never coordinate, so minting the same request twice
    yields two unrelated identifier sets.
    """

    TOKEN_ID_CEILING = 100_000

    def issue_token_id(self) -> str:
        return str(secrets.randbelow(self.TOKEN_ID_CEILING))

    def issue_contract_address(self) -> str:
        return f"0x{secrets.token_hex(20)}"

    def issue_transaction_hash(self) -> str:
        return f"0x{secrets.token_hex(32)}"
