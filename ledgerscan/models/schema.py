"""
Pydantic models for normalized statement data.
"""
from datetime import datetime
from typing import List, Optional, Dict, Any
from pydantic import BaseModel, ConfigDict, Field, field_validator
from decimal import Decimal

CREDIT = "credit"
DEBIT = "debit"

ZERO = Decimal("0")


class Account(BaseModel):
    """Account a statement belongs to."""
    model_config = ConfigDict(frozen=True)

    number: str = ""
    name: str = ""
    type: str = ""
    polarity: str = ""  # "credit", "debit" or empty
    reconciliable: bool = False

    @field_validator('polarity')
    @classmethod
    def validate_polarity(cls, v):
        if v not in ("", CREDIT, DEBIT):
            raise ValueError(f"Polarity must be '{CREDIT}', '{DEBIT}' or empty, got '{v}'")
        return v


class Transaction(BaseModel):
    """Individual transaction record."""
    sequence: int = Field(..., ge=1)
    date: datetime
    descriptions: List[str] = Field(default_factory=list)
    type: str
    amount: Decimal
    balance: Decimal = ZERO
    reference: str = ""
    tags: List[str] = Field(default_factory=list)
    data: Dict[str, Any] = Field(default_factory=dict)

    @field_validator('type')
    @classmethod
    def validate_type(cls, v):
        if v not in (CREDIT, DEBIT):
            raise ValueError(f"Transaction type must be '{CREDIT}' or '{DEBIT}', got '{v}'")
        return v


class Statement(BaseModel):
    """One account's ledger extracted from a document."""
    source: str = ""
    account: Account = Field(default_factory=Account)
    starting_balance: Decimal = ZERO
    ending_balance: Decimal = ZERO
    calculated_ending_balance: Decimal = ZERO
    total_credit: Decimal = ZERO
    total_debit: Decimal = ZERO
    nett: Decimal = ZERO
    statement_date: Optional[datetime] = None
    transaction_start_date: Optional[datetime] = None
    transaction_end_date: Optional[datetime] = None
    transactions: List[Transaction] = Field(default_factory=list)

    @property
    def has_useful_output(self) -> bool:
        """True when anything was extracted: transactions or an account number."""
        return bool(self.transactions) or bool(self.account.number)

    def to_output(self, transactions_only: bool = False, statement_only: bool = False) -> Any:
        """
        Shape the statement for JSON output.

        Args:
            transactions_only: Return only the list of transactions
            statement_only: Leave the transactions out of the mapping

        Returns:
            A list of transaction dicts, or a dict describing the statement
        """
        transactions = [txn.model_dump(mode='json') for txn in self.transactions]
        if transactions_only:
            return transactions

        output: Dict[str, Any] = {
            "source": self.source,
            "account": self.account.model_dump(mode='json'),
        }

        if self.account.reconciliable:
            if self.statement_date is not None:
                output["statement_date"] = self.statement_date.isoformat()
            for name in ("starting_balance", "ending_balance", "calculated_ending_balance"):
                value = getattr(self, name)
                if value != ZERO:
                    output[name] = str(value)

        output["total_credit"] = str(self.total_credit)
        output["total_debit"] = str(self.total_debit)
        output["nett"] = str(self.nett)

        if self.transaction_start_date is not None:
            output["transaction_start_date"] = self.transaction_start_date.isoformat()
        if self.transaction_end_date is not None:
            output["transaction_end_date"] = self.transaction_end_date.isoformat()

        if transactions and not statement_only:
            output["transactions"] = transactions

        return output
