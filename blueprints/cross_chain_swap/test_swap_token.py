import pytest

from hathor_tests.nanocontracts.blueprints.unittest import BlueprintTestCase

from blueprints.cross_chain_swap.errors import InvalidConfig, Unauthorized
from blueprints.cross_chain_swap.swap_token import SwapToken


class TestSwapToken(BlueprintTestCase):
    def setUp(self) -> None:
        super().setUp()

        self.blueprint_id = self.gen_random_blueprint_id()
        self.nc_catalog.blueprints[self.blueprint_id] = SwapToken

        self.admin = self.gen_random_address()
        self.alice = self.gen_random_address()
        self.bob = self.gen_random_address()
        self.carol = self.gen_random_address()

        self.token_id = self.gen_random_contract_id()
        ctx = self.create_context(caller_id=self.admin, timestamp=1)
        self.runner.create_contract(self.token_id, self.blueprint_id, ctx, "Swap Token", "SWP", 8)

    def _ctx(self, caller):
        return self.create_context(caller_id=caller, timestamp=2)

    def _balance(self, account) -> int:
        return self.runner.call_view_method(self.token_id, "balance_of", account)

    def test_initialize_and_info(self):
        info = self.runner.call_view_method(self.token_id, "get_info")
        assert info.admin == str(self.admin)
        assert info.name == "Swap Token"
        assert info.symbol == "SWP"
        assert info.decimals == 8
        assert info.total_supply == 0

    def test_mint_admin_only(self):
        self.runner.call_public_method(self.token_id, "mint", self._ctx(self.admin), self.alice, 500)
        assert self._balance(self.alice) == 500
        assert self.runner.call_view_method(self.token_id, "get_total_supply") == 500

        with pytest.raises(Unauthorized):
            self.runner.call_public_method(self.token_id, "mint", self._ctx(self.alice), self.alice, 1)
        with pytest.raises(InvalidConfig):
            self.runner.call_public_method(self.token_id, "mint", self._ctx(self.admin), self.alice, 0)

    def test_transfer_reports_insufficient_balance(self):
        self.runner.call_public_method(self.token_id, "mint", self._ctx(self.admin), self.alice, 100)

        ok = self.runner.call_public_method(self.token_id, "transfer", self._ctx(self.alice), self.bob, 40)
        assert ok is True
        assert self._balance(self.alice) == 60
        assert self._balance(self.bob) == 40

        ok = self.runner.call_public_method(self.token_id, "transfer", self._ctx(self.alice), self.bob, 61)
        assert ok is False
        assert self._balance(self.alice) == 60
        assert self._balance(self.bob) == 40

    def test_transfer_from_spends_allowance(self):
        self.runner.call_public_method(self.token_id, "mint", self._ctx(self.admin), self.alice, 100)

        # no allowance yet
        ok = self.runner.call_public_method(
            self.token_id, "transfer_from", self._ctx(self.bob), self.alice, self.carol, 10
        )
        assert ok is False

        self.runner.call_public_method(self.token_id, "approve", self._ctx(self.alice), self.bob, 30)
        assert self.runner.call_view_method(self.token_id, "allowance", self.alice, self.bob) == 30

        ok = self.runner.call_public_method(
            self.token_id, "transfer_from", self._ctx(self.bob), self.alice, self.carol, 25
        )
        assert ok is True
        assert self._balance(self.carol) == 25
        assert self.runner.call_view_method(self.token_id, "allowance", self.alice, self.bob) == 5

        # allowance left but not enough
        ok = self.runner.call_public_method(
            self.token_id, "transfer_from", self._ctx(self.bob), self.alice, self.carol, 6
        )
        assert ok is False

    def test_transfer_from_keeps_allowance_when_balance_is_short(self):
        self.runner.call_public_method(self.token_id, "mint", self._ctx(self.admin), self.alice, 10)
        self.runner.call_public_method(self.token_id, "approve", self._ctx(self.alice), self.bob, 50)

        ok = self.runner.call_public_method(
            self.token_id, "transfer_from", self._ctx(self.bob), self.alice, self.carol, 20
        )
        assert ok is False
        assert self.runner.call_view_method(self.token_id, "allowance", self.alice, self.bob) == 50
        assert self._balance(self.alice) == 10

    def test_negative_allowance_rejected(self):
        with pytest.raises(InvalidConfig):
            self.runner.call_public_method(self.token_id, "approve", self._ctx(self.alice), self.bob, -1)
