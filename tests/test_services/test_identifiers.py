"""
Tests for Identifier Issuance.
"""

import re

from assetmint.services.identifiers import IdentifierIssuer, SyntheticIdentifierIssuer


class TestSyntheticIdentifierIssuer:

    def test_token_id_range(self):
        issuer = SyntheticIdentifierIssuer()
        for _ in range(50):
            assert 0 <= int(issuer.issue_token_id()) < 100_000

    def test_contract_address_format(self):
        address = SyntheticIdentifierIssuer().issue_contract_address()

        assert re.fullmatch(r"0x[0-9a-f]{40}", address)

    def test_transaction_hash_format(self):
        tx_hash = SyntheticIdentifierIssuer().issue_transaction_hash()

        assert re.fullmatch(r"0x[0-9a-f]{64}", tx_hash)

    def test_calls_are_independent(self):
        issuer = SyntheticIdentifierIssuer()

        assert issuer.issue_contract_address() != issuer.issue_contract_address()

    def test_satisfies_protocol(self):
        assert isinstance(SyntheticIdentifierIssuer(), IdentifierIssuer)
