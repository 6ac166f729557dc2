"""
Tests for credit card statements split into per-card sections.
"""
from datetime import datetime
from decimal import Decimal

import pytest

from ..core.sections import SectionExtractor, split_sections


@pytest.fixture
def cc_config(registry):
    return registry.get("MAYBANK_2_CC")


class TestSplitSections:

    def test_one_section_per_header(self, multi_card_rows, cc_config):
        sections = split_sections("\n".join(multi_card_rows), cc_config)
        assert [s.number for s in sections] == ["5239000000000002", "377900000000001"]
        assert [s.account_type for s in sections] == ["MAYBANK 2 PLAT MASTERCARD", "MAYBANK 2 PLAT AMEX"]

    def test_section_stops_before_next_header(self, multi_card_rows, cc_config):
        first = split_sections("\n".join(multi_card_rows), cc_config)[0]
        body = "\n".join(first.lines)
        assert "SUB TOTAL/JUMLAH 125.50" in body
        assert "RESTAURANT XYZ" not in body

    def test_closing_marker_cut(self, cc_config):
        text = "\n".join([
            "MAYBANK 2 PLAT AMEX    :    3779 000000 00001",
            "05/11 05/11 RESTAURANT XYZ 25.00",
            "  SUB TOTAL/JUMLAH 45.00",
            "x" * 80,
            "01/12 01/12 PROMOTIONAL FOOTER 9.99",
        ])
        section = split_sections(text, cc_config)[0]
        assert "PROMOTIONAL FOOTER" not in "\n".join(section.lines)

    def test_no_headers(self, cc_rows, cc_config):
        assert split_sections("\n".join(cc_rows), cc_config) == []


class TestSectionExtractor:

    def test_multi_card(self, multi_card_rows, cc_config):
        master, amex = SectionExtractor().extract("nov", multi_card_rows, cc_config)

        assert master.account.number == "5239000000000002"
        assert master.account.name == "JOHN DOE BIN SMITH"
        assert master.account.polarity == "credit"
        assert master.statement_date == datetime(2024, 11, 28)
        assert master.starting_balance == Decimal("100.00")
        assert master.ending_balance == Decimal("125.50")
        assert master.calculated_ending_balance == Decimal("125.50")
        assert master.total_credit == Decimal("-50.00")
        assert master.total_debit == Decimal("75.50")
        assert master.nett == Decimal("25.50")
        assert master.transactions[0].date == datetime(2024, 10, 29)

        assert amex.account.number == "377900000000001"
        assert amex.starting_balance == Decimal("20.00")
        assert amex.calculated_ending_balance == Decimal("45.00")
        assert len(amex.transactions) == 1

    def test_repeated_header_merged(self, multi_card_rows, cc_config):
        rows = multi_card_rows + [
            "MAYBANK 2 PLAT MASTERCARD    :    5239 0000 0000 0002",
            "10/11 10/11 GROCERY 10.00",
        ]
        statements = SectionExtractor().extract("nov", rows, cc_config)
        assert len(statements) == 2
        master = statements[0]
        assert master.account.number == "5239000000000002"
        assert [txn.descriptions[0] for txn in master.transactions] == [
            "PAYMENT RECEIVED", "ONLINE PURCHASE ABC", "GROCERY",
        ]
        assert [txn.sequence for txn in master.transactions] == [1, 2, 3]

    def test_single_account_fallback(self, cc_rows, cc_config):
        statements = SectionExtractor().extract("nov", cc_rows, cc_config)
        assert len(statements) == 1

        statement = statements[0]
        assert statement.account.number == ""
        assert statement.starting_balance == Decimal("100.00")
        assert statement.ending_balance == Decimal("150.50")
        assert statement.calculated_ending_balance == Decimal("150.50")
        assert statement.total_debit == Decimal("100.50")
        assert statement.total_credit == Decimal("-50.00")
        assert statement.nett == Decimal("50.50")
        assert statement.transactions[0].date == datetime(2024, 10, 29)

    def test_fallback_without_output(self, cc_config):
        assert SectionExtractor().extract("empty", ["nothing to see"], cc_config) == []
