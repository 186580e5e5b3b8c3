"""Round-trip tests for the convenience functions in both formats."""

from dataclasses import dataclass, field
from datetime import UTC, datetime

import pytest

from typedserde import from_json, from_toml, to_json, to_toml
from typedserde.mapper import ZERO_TIME


@dataclass
class Address:
    street: str = ""
    zip_code: str = field(default="", metadata={"json": "zip", "toml": "zip"})


@dataclass
class Customer:
    name: str = ""
    id: int = 0
    balance: float = 0.0
    active: bool = False
    since: datetime = ZERO_TIME
    emails: list[str] = field(default_factory=list)
    scores: list[float] = field(default_factory=list)
    matrix: list[list[int]] = field(default_factory=list)
    address: Address = field(default_factory=Address)
    labels: dict[str, str] = field(default_factory=dict)


CUSTOMERS = [
    Customer(),
    Customer(
        name="Ann",
        id=1,
        balance=10.25,
        active=True,
        since=datetime(2020, 2, 29, 23, 59, 59, tzinfo=UTC),
        emails=["ann@example.com"],
        scores=[0.1, 1e-7, 1e22],
        matrix=[[1, 2], [], [3]],
        address=Address(street="1 Main St", zip_code="02134"),
        labels={"tier": "gold", "two words": "yes"},
    ),
    Customer(
        name='quote " backslash \\ tab \t newline \n unicode é',
        id=-(2**63),
        balance=-0.0001,
        emails=["", "x"],
    ),
    Customer(id=2**63 - 1, balance=123456789.125),
]


class TestJSONRoundTrip:
    """Test that to_json and from_json are inverses for records."""

    @pytest.mark.parametrize("customer", CUSTOMERS)
    def test_round_trip(self, customer: Customer) -> None:
        """Test decode(encode(x)) == x."""
        decoded = Customer()
        from_json(to_json(customer), decoded)
        assert decoded == customer

    def test_encoding_is_stable(self) -> None:
        """Test that re-encoding decoded output gives the same text."""
        text = to_json(CUSTOMERS[1])
        decoded = Customer()
        from_json(text, decoded)
        assert to_json(decoded) == text


class TestTOMLRoundTrip:
    """Test that to_toml and from_toml are inverses for records."""

    @pytest.mark.parametrize("customer", CUSTOMERS)
    def test_round_trip(self, customer: Customer) -> None:
        """Test decode(encode(x)) == x."""
        decoded = Customer()
        from_toml(to_toml(customer), decoded)
        assert decoded == customer

    def test_trailing_newline(self) -> None:
        """Test that every line, including the last, ends with a newline."""
        text = to_toml(CUSTOMERS[1])
        assert text.endswith("\n")
        assert not text.endswith("\n\n")
        assert 'address.zip = "02134"' in text
        assert 'labels."two words" = "yes"' in text


class TestCrossFormat:
    """Test moving a record from one format to the other."""

    def test_json_to_toml(self) -> None:
        """Test that both formats carry the same data."""
        from_json_result = Customer()
        from_json(to_json(CUSTOMERS[1]), from_json_result)
        from_toml_result = Customer()
        from_toml(to_toml(from_json_result), from_toml_result)
        assert from_toml_result == CUSTOMERS[1]
