"""
Tests for the statement models and their output shape.
"""
from datetime import datetime
from decimal import Decimal

import pytest
from pydantic import ValidationError

from ..models.schema import Account, Statement, Transaction


@pytest.fixture
def txn():
    return Transaction(
        sequence=1,
        date=datetime(2024, 11, 1),
        descriptions=["TRANSFER IN"],
        type="credit",
        amount=Decimal("50.00"),
        balance=Decimal("150.00"),
    )


class TestModels:

    def test_transaction_type_validated(self):
        with pytest.raises(ValidationError):
            Transaction(sequence=1, date=datetime(2024, 1, 1), type="refund", amount=Decimal("1"))

    def test_sequence_starts_at_one(self):
        with pytest.raises(ValidationError):
            Transaction(sequence=0, date=datetime(2024, 1, 1), type="debit", amount=Decimal("-1"))

    def test_account_polarity_validated(self):
        with pytest.raises(ValidationError):
            Account(polarity="both")

    def test_useful_output(self, txn):
        assert not Statement().has_useful_output
        assert Statement(account=Account(number="1")).has_useful_output
        assert Statement(transactions=[txn]).has_useful_output


class TestOutput:

    def test_reconciliation_fields_only_for_reconciliable(self, txn):
        statement = Statement(
            source="nov",
            account=Account(number="1"),
            starting_balance=Decimal("100.00"),
            ending_balance=Decimal("150.00"),
            statement_date=datetime(2024, 11, 30),
            transactions=[txn],
        )
        output = statement.to_output()
        assert "starting_balance" not in output
        assert "statement_date" not in output

        reconciled = statement.model_copy(update={"account": Account(number="1", reconciliable=True)})
        output = reconciled.to_output()
        assert output["starting_balance"] == "100.00"
        assert output["ending_balance"] == "150.00"
        assert output["statement_date"] == "2024-11-30T00:00:00"
        assert "calculated_ending_balance" not in output

    def test_money_serialized_as_strings(self, txn):
        output = Statement(transactions=[txn], total_credit=Decimal("50.00")).to_output()
        assert output["total_credit"] == "50.00"
        assert output["transactions"][0]["amount"] == "50.00"
        assert output["transactions"][0]["date"] == "2024-11-01T00:00:00"

    def test_statement_only_drops_transactions(self, txn):
        assert "transactions" not in Statement(transactions=[txn]).to_output(statement_only=True)

    def test_empty_transactions_omitted(self):
        assert "transactions" not in Statement(account=Account(number="1")).to_output()

    def test_transactions_only(self, txn):
        output = Statement(transactions=[txn]).to_output(transactions_only=True)
        assert isinstance(output, list)
        assert output[0]["descriptions"] == ["TRANSFER IN"]
