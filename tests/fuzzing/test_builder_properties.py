"""
Property-based tests for the posting core.

Hypothesis generates stock lines, transaction types and posting modes and
checks that the invariants of the registry builder and the balance policy
hold for every combination:

- Every posting balances on the cash and the gold leg.
- Every kept row carries a non-negative value on exactly one side.
- Outbound postings mirror inbound ones.
- A balance change followed by its negation is the zero change.
"""

from decimal import Decimal
from uuid import uuid4

from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st
from hypothesis.strategies import composite

from bullion_config.schema import LedgerAccounts
from bullion_kernel.domain.balance_policy import BalanceChange, compute_balance_change
from bullion_kernel.domain.dtos import StockLineInput
from bullion_kernel.domain.line_totaliser import totalise_lines
from bullion_kernel.domain.registry_builder import (
    PostingContext,
    RegistryEntryBuilder,
    check_balanced,
    leg_totals,
)
from bullion_kernel.domain.transaction_types import (
    INBOUND_TYPES,
    TransactionMode,
    TransactionType,
)

BUILDER = RegistryEntryBuilder(
    LedgerAccounts(
        inventory_gold="INVENTORY-GOLD",
        gold_stock="GOLD-STOCK",
        making_charges="MAKING-CHARGES",
        premium_discount="PREMIUM-DISCOUNT",
        vat="VAT",
        other_charges="OTHER-CHARGES",
        purity_difference="PURITY-DIFFERENCE",
        fx_gain_loss="FX-GAIN-LOSS",
        fx_clearing="FX-CLEARING",
        fixed_gold="FIXED-GOLD",
        hedge="HEDGE",
    )
)

MIRRORS = {
    TransactionType.PURCHASE: TransactionType.SALE,
    TransactionType.SALE_RETURN: TransactionType.PURCHASE_RETURN,
    TransactionType.IMPORT_PURCHASE: TransactionType.EXPORT_SALE,
    TransactionType.EXPORT_SALE_RETURN: TransactionType.IMPORT_PURCHASE_RETURN,
}


def money(max_value="100000"):
    return st.decimals(
        min_value=Decimal("0"),
        max_value=Decimal(max_value),
        places=2,
        allow_nan=False,
        allow_infinity=False,
    )


@composite
def stock_lines(draw):
    gross = draw(
        st.decimals(
            min_value=Decimal("0.001"), max_value=Decimal("10000"), places=3
        )
    )
    purity_std = draw(st.sampled_from([Decimal("0.916"), Decimal("0.999"), Decimal("0.75")]))
    purity = draw(st.decimals(min_value=purity_std, max_value=Decimal("1"), places=4))
    pass_diff = draw(st.booleans())
    # Bounded by the measured pure weight so the party gold row stays non-negative.
    difference = draw(
        st.decimals(min_value=-gross, max_value=purity * gross, places=2)
    )
    return StockLineInput(
        stock_code="GOLD",
        gross_weight=gross,
        purity=purity,
        purity_std=purity_std,
        pieces=draw(st.integers(min_value=0, max_value=20)),
        base_amount=draw(money("1000000")),
        making_charges=draw(money()),
        premium=draw(
            st.decimals(min_value=Decimal("-500"), max_value=Decimal("500"), places=2)
        ),
        vat_amount=draw(money()),
        purity_difference=difference,
        pass_purity_diff=pass_diff,
        exclude_vat=draw(st.booleans()),
        vat_on_making=draw(st.booleans()),
        fx_gain=draw(money("1000")),
        fx_loss=draw(money("1000")),
        other_charges_amount=draw(money("1000")),
        other_charges_description="Assay",
    )


def _ctx(transaction_type, mode, hedge):
    return PostingContext(
        transaction_type=transaction_type,
        mode=mode,
        hedge=hedge,
        party_id=uuid4(),
        party_code="P-1",
        party_name="Fuzz Party",
        party_currency="AED",
        voucher_number="V-1",
        hedge_voucher_number="HXX001" if hedge else None,
    )


class TestRegistryBuilderProperties:
    @given(
        line=stock_lines(),
        transaction_type=st.sampled_from(list(TransactionType)),
        mode=st.sampled_from(list(TransactionMode)),
        hedge=st.booleans(),
    )
    @settings(max_examples=300, suppress_health_check=[HealthCheck.too_slow])
    def test_every_posting_balances(self, line, transaction_type, mode, hedge):
        totals = totalise_lines([line], is_registry=True)
        rows = BUILDER.build_line_entries(_ctx(transaction_type, mode, hedge), totals)

        check_balanced(rows)

    @given(
        line=stock_lines(),
        transaction_type=st.sampled_from(list(TransactionType)),
        mode=st.sampled_from(list(TransactionMode)),
        hedge=st.booleans(),
    )
    @settings(max_examples=300, suppress_health_check=[HealthCheck.too_slow])
    def test_rows_are_single_sided(self, line, transaction_type, mode, hedge):
        totals = totalise_lines([line], is_registry=True)
        rows = BUILDER.build_line_entries(_ctx(transaction_type, mode, hedge), totals)

        for row in rows:
            assert row.value >= 0
            assert not (row.debit > 0 and row.credit > 0)
            if row.value > 0:
                assert row.value in (row.debit, row.credit)

    @given(
        line=stock_lines(),
        inbound=st.sampled_from(sorted(MIRRORS, key=lambda t: t.value)),
        mode=st.sampled_from(list(TransactionMode)),
        hedge=st.booleans(),
    )
    @settings(max_examples=200, suppress_health_check=[HealthCheck.too_slow])
    def test_outbound_mirrors_inbound(self, line, inbound, mode, hedge):
        assert inbound in INBOUND_TYPES
        totals = totalise_lines([line], is_registry=True)
        inbound_rows = BUILDER.build_line_entries(_ctx(inbound, mode, hedge), totals)
        outbound_rows = BUILDER.build_line_entries(
            _ctx(MIRRORS[inbound], mode, hedge), totals
        )

        inbound_legs = leg_totals(inbound_rows)
        outbound_legs = leg_totals(outbound_rows)
        assert inbound_legs["cash_debit"] == outbound_legs["cash_credit"]
        assert inbound_legs["gold_debit"] == outbound_legs["gold_credit"]
        assert len(inbound_rows) == len(outbound_rows)


class TestBalancePolicyProperties:
    @given(
        line=stock_lines(),
        inbound=st.sampled_from(sorted(MIRRORS, key=lambda t: t.value)),
        mode=st.sampled_from(list(TransactionMode)),
        hedge=st.booleans(),
    )
    @settings(max_examples=200, suppress_health_check=[HealthCheck.too_slow])
    def test_outbound_is_negated_inbound(self, line, inbound, mode, hedge):
        totals = totalise_lines([line])
        inbound_change = compute_balance_change(inbound, mode, hedge, totals)
        outbound_change = compute_balance_change(MIRRORS[inbound], mode, hedge, totals)

        assert outbound_change == inbound_change.scaled(-1)

    @given(
        line=stock_lines(),
        transaction_type=st.sampled_from(list(TransactionType)),
        mode=st.sampled_from(list(TransactionMode)),
        hedge=st.booleans(),
    )
    @settings(max_examples=200, suppress_health_check=[HealthCheck.too_slow])
    def test_change_plus_reversal_is_zero(self, line, transaction_type, mode, hedge):
        change = compute_balance_change(
            transaction_type, mode, hedge, totalise_lines([line])
        )
        reversal = change.scaled(-1)
        combined = BalanceChange(
            gold_balance=change.gold_balance + reversal.gold_balance,
            gold_value=change.gold_value + reversal.gold_value,
            cash_balance=change.cash_balance + reversal.cash_balance,
            premium_balance=change.premium_balance + reversal.premium_balance,
            discount_balance=change.discount_balance + reversal.discount_balance,
            other_charges=change.other_charges + reversal.other_charges,
            vat_amount=change.vat_amount + reversal.vat_amount,
        )

        assert combined.is_zero()
