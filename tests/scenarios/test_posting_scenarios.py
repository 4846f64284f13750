"""
End-to-end posting scenarios.

Each scenario drives MetalTransactionService against the database and
checks balances, inventory, registry rows and hedge/fixing records
together.
"""

from decimal import Decimal

import pytest
from sqlalchemy import select

from bullion_kernel.models.fixing import FixingPrice, TransactionFixing
from bullion_kernel.models.metal_transaction import MetalTransaction
from bullion_kernel.selectors.registry_selector import RegistrySelector
from bullion_kernel.services.metal_stock_service import MetalStockService
from bullion_kernel.services.party_service import PartyService

OTHER_CHARGE = {
    "description": "Freight",
    "debit": {"account": "ACC-X", "baseCurrency": "100", "currency": "AED"},
    "credit": {"account": "ACC-Y", "baseCurrency": "100", "currency": "AED"},
    "vatDetails": {"vatRate": "5", "vatAmount": "5"},
}


def _rows(session, metal_transaction_id):
    return RegistrySelector(session).rows_for_transaction(metal_transaction_id)


def _types(rows):
    return [row.type for row in rows]


class TestUnfixedPurchase:
    """One 22K line bought unfixed from a supplier."""

    @pytest.fixture
    def posted(self, posting_service, parties, gold_stock, transaction_payload, test_actor_id):
        return posting_service.create_transaction(transaction_payload(), test_actor_id)

    def test_party_balances(self, posted, read):
        supplier = PartyService(read()).get_by_code("SUPP-001")

        assert supplier.gold_total_grams == Decimal("91.6")
        assert supplier.gold_total_value == Decimal("20000")
        # Making 500 + VAT 1025; the gold value is carried by gold_total_value.
        assert supplier.cash("AED") == Decimal("1525")

    def test_inventory(self, posted, read):
        inventory = MetalStockService(read()).get_inventory("GOLD-22K")

        assert inventory.gross_weight == Decimal("100")
        assert inventory.pure_weight == Decimal("91.6")

    def test_registry_rows(self, posted, read):
        rows = _rows(read(), posted.metal_transaction_id)

        assert _types(rows) == [
            "PARTY_GOLD_BALANCE",
            "GOLD",
            "GOLD_STOCK",
            "PARTY_MAKING_CHARGES",
            "MAKING_CHARGES",
            "PARTY_VAT_AMOUNT",
            "VAT_AMOUNT",
        ]
        party_gold = rows[0]
        assert party_gold.credit == Decimal("91.6")
        assert party_gold.gold_credit == Decimal("91.6")
        assert rows[1].gold_debit == Decimal("91.6")
        assert rows[2].value == Decimal("100")
        assert rows[5].description.startswith("VAT on gold value 20000")

    def test_registry_balanced(self, posted, read):
        assert RegistrySelector(read()).leg_totals(posted.metal_transaction_id).is_balanced


class TestFixedSale:
    """The purchased line sold fixed to a customer."""

    @pytest.fixture
    def posted(self, posting_service, parties, gold_stock, transaction_payload, test_actor_id):
        posting_service.create_transaction(transaction_payload(), test_actor_id)
        return posting_service.create_transaction(
            transaction_payload(
                transactionType="sale",
                partyCode="CUST-001",
                voucherNumber="MS-0001",
                fixed=True,
                unfix=False,
            ),
            test_actor_id,
        )

    def test_party_cash_debited_total(self, posted, read):
        customer = PartyService(read()).get_by_code("CUST-001")

        assert customer.cash("AED") == Decimal("-21525")
        assert customer.gold_total_grams == Decimal("0")

    def test_fixing_row(self, posted, parties, read):
        rows = _rows(read(), posted.metal_transaction_id)
        fixing = [
            row
            for row in rows
            if row.type == "sale-fixing" and row.party_id == parties["CUST-001"].id
        ]

        assert "PARTY_GOLD_BALANCE" not in _types(rows)
        assert len(fixing) == 1
        assert fixing[0].posting_code == "PARTY-GOLD"
        assert fixing[0].debit == Decimal("91.6")
        assert fixing[0].gold_debit == Decimal("91.6")

    def test_fixing_price_recorded(self, posted, read):
        prices = read().execute(
            select(FixingPrice).where(
                FixingPrice.metal_transaction_id == posted.metal_transaction_id
            )
        ).scalars().all()
        assert len(prices) == 1

    def test_inventory_depleted(self, posted, read):
        assert MetalStockService(read()).get_inventory("GOLD-22K").gross_weight == Decimal("0")


class TestHedgedPurchase:
    """The unfixed purchase with a hedge."""

    @pytest.fixture
    def posted(self, posting_service, parties, gold_stock, transaction_payload, test_actor_id):
        return posting_service.create_transaction(
            transaction_payload(hedge=True), test_actor_id
        )

    def test_hedge_voucher_persisted(self, posted, read):
        txn = read().get(MetalTransaction, posted.metal_transaction_id)

        assert posted.hedge_voucher_number == "HPM001"
        assert txn.hedge_voucher_number == "HPM001"

    def test_hedge_rows(self, posted, read):
        rows = _rows(read(), posted.metal_transaction_id)
        hedge_rows = [row for row in rows if row.hedge_reference == "HPM001"]

        assert _types(hedge_rows) == [
            "PARTY_HEDGE_ENTRY",
            "PARTY_CASH_BALANCE",
            "HEDGE_ENTRY",
        ]
        assert hedge_rows[2].reference == "HPM001"
        assert RegistrySelector(read()).leg_totals(posted.metal_transaction_id).is_balanced

    def test_transaction_fixing(self, posted, read):
        fixings = read().execute(
            select(TransactionFixing).where(
                TransactionFixing.metal_transaction_id == posted.metal_transaction_id
            )
        ).scalars().all()

        assert len(fixings) == 1
        assert fixings[0].transaction_id.startswith("HSM")
        assert fixings[0].transaction_id == posted.fixing_transaction_id
        assert fixings[0].type == "SALE-HEDGE"

    def test_hedge_nets_party_gold(self, posted, read):
        supplier = PartyService(read()).get_by_code("SUPP-001")

        assert supplier.gold_total_grams == Decimal("0")
        assert supplier.gold_total_value == Decimal("0")
        assert supplier.cash("AED") == Decimal("21525")


class TestPurityDifferenceGain:
    """A fine bar bought against a 22K standard with the difference passed through."""

    @pytest.fixture
    def posted(
        self,
        posting_service,
        parties,
        fine_gold_stock,
        transaction_payload,
        line_payload,
        test_actor_id,
    ):
        line = line_payload(
            stockCode="GOLD-FINE",
            purity="0.9995",
            purityStd="0.916",
            purityDifference="8.35",
            passPurityDiff=True,
        )
        return posting_service.create_transaction(
            transaction_payload(stockItems=[line]), test_actor_id
        )

    def test_purity_difference_row(self, posted, read):
        rows = _rows(read(), posted.metal_transaction_id)
        difference = [row for row in rows if row.type == "PURITY_DIFFERENCE"]

        assert len(difference) == 1
        assert difference[0].value == Decimal("8.35")
        assert difference[0].credit == Decimal("8.35")
        assert "(Gain 8.35)" in difference[0].description

    def test_gold_row_carries_measured_pure_weight(self, posted, read):
        rows = _rows(read(), posted.metal_transaction_id)
        gold = [row for row in rows if row.type == "GOLD"]

        assert gold[0].pure_weight == Decimal("99.95")
        assert gold[0].gold_debit == Decimal("99.95")

    def test_balanced(self, posted, read):
        assert RegistrySelector(read()).leg_totals(posted.metal_transaction_id).is_balanced


class TestPurityDifferenceLoss:
    """A bar tested below the 22K standard with the shortfall passed through."""

    @pytest.fixture
    def posted(
        self,
        posting_service,
        parties,
        fine_gold_stock,
        transaction_payload,
        line_payload,
        test_actor_id,
    ):
        line = line_payload(
            stockCode="GOLD-FINE",
            purity="0.896",
            purityStd="0.916",
            purityDifference="-2",
            passPurityDiff=True,
        )
        return posting_service.create_transaction(
            transaction_payload(stockItems=[line]), test_actor_id
        )

    def test_purity_difference_row(self, posted, read):
        rows = _rows(read(), posted.metal_transaction_id)
        difference = [row for row in rows if row.type == "PURITY_DIFFERENCE"]

        assert len(difference) == 1
        assert difference[0].value == Decimal("2")
        assert difference[0].debit == Decimal("2")
        assert difference[0].gold_debit == Decimal("2")
        assert "(Loss -2)" in difference[0].description

    def test_gold_row_carries_standard_pure_weight(self, posted, read):
        rows = _rows(read(), posted.metal_transaction_id)
        gold = [row for row in rows if row.type == "GOLD"]

        assert gold[0].pure_weight == Decimal("91.6")

    def test_balanced(self, posted, read):
        assert RegistrySelector(read()).leg_totals(posted.metal_transaction_id).is_balanced


class TestUpdatePartyChange:
    """A purchase re-pointed from one party to another."""

    @pytest.fixture
    def updated(self, posting_service, parties, gold_stock, transaction_payload, test_actor_id):
        created = posting_service.create_transaction(transaction_payload(), test_actor_id)
        return posting_service.update_transaction(
            created.metal_transaction_id, {"partyCode": "CUST-001"}, test_actor_id
        )

    def test_balances_moved(self, updated, read):
        service = PartyService(read())
        previous = service.get_by_code("SUPP-001")
        current = service.get_by_code("CUST-001")

        assert previous.gold_total_grams == Decimal("0")
        assert previous.cash("AED") == Decimal("0")
        assert current.gold_total_grams == Decimal("91.6")
        assert current.cash("AED") == Decimal("1525")

    def test_registry_rewritten(self, updated, parties, read):
        rows = _rows(read(), updated.metal_transaction_id)
        party_ids = {row.party_id for row in rows if row.party_id is not None}

        assert party_ids == {parties["CUST-001"].id}
        assert {row.transaction_id for row in rows} == {updated.registry_transaction_id}

    def test_inventory_unchanged(self, updated, read):
        assert MetalStockService(read()).get_inventory("GOLD-22K").gross_weight == Decimal("100")


class TestDeleteWithOtherCharge:
    """A purchase carrying a freight charge between two accounts, then deleted."""

    @pytest.fixture
    def created(self, posting_service, parties, gold_stock, transaction_payload, test_actor_id):
        return posting_service.create_transaction(
            transaction_payload(otherCharges=[OTHER_CHARGE]), test_actor_id
        )

    def test_charge_posted(self, created, read):
        session = read()
        service = PartyService(session)
        rows = _rows(session, created.metal_transaction_id)

        assert service.get_by_code("ACC-X").cash("AED") == Decimal("-105")
        assert service.get_by_code("ACC-Y").cash("AED") == Decimal("105")
        assert [row.posting_code for row in rows if row.type == "OTHER-CHARGE"] == [
            "008",
            "093",
            "008",
            "093",
        ]

    def test_delete_restores_accounts(self, created, posting_service, read, test_actor_id):
        posting_service.delete_transaction(created.metal_transaction_id, test_actor_id)

        session = read()
        service = PartyService(session)
        assert service.get_by_code("ACC-X").cash("AED") == Decimal("0")
        assert service.get_by_code("ACC-Y").cash("AED") == Decimal("0")
        assert _rows(session, created.metal_transaction_id) == []
