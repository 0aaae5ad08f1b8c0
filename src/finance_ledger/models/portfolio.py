"""Brokerage snapshot handed in by the market-data collaborator."""

from dataclasses import dataclass, field
from decimal import Decimal

from finance_ledger.utils.decimal_utils import ZERO, ratio, safe_decimal, sum_amounts

# Broker security type codes and the allocation bucket they belong to
SECURITY_TYPE_CATEGORIES = {
    "STK": "Stocks",
    "OPT": "Options",
    "FUT": "Futures",
    "BOND": "Bonds",
    "CASH": "Cash",
    "CRYPTO": "Crypto",
}


@dataclass(frozen=True)
class Position:
    """One holding as reported by the broker."""

    symbol: str
    sec_type: str
    market_value: Decimal
    unrealized_pnl: Decimal = ZERO

    @property
    def category(self) -> str:
        return SECURITY_TYPE_CATEGORIES.get(self.sec_type.upper(), "Other")


@dataclass(frozen=True)
class PortfolioSnapshot:
    """Point-in-time portfolio figures; the ledger core never fetches these itself."""

    net_liquidation: Decimal
    total_cash: Decimal = ZERO
    positions: tuple[Position, ...] = field(default_factory=tuple)

    @property
    def unrealized_return(self) -> float:
        """Unrealized P&L over the cost basis of the positions (0.0 without positions)."""
        pnl = sum_amounts(p.unrealized_pnl for p in self.positions)
        cost = sum_amounts(p.market_value for p in self.positions) - pnl
        return ratio(pnl, cost)

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> "PortfolioSnapshot":
        positions = tuple(
            Position(
                symbol=str(p["symbol"]),
                sec_type=str(p.get("sec_type", "STK")),
                market_value=safe_decimal(p.get("market_value")),
                unrealized_pnl=safe_decimal(p.get("unrealized_pnl")),
            )
            for p in data.get("positions", []) or []  # type: ignore[union-attr]
        )
        return cls(
            net_liquidation=safe_decimal(data.get("net_liquidation")),
            total_cash=safe_decimal(data.get("total_cash")),
            positions=positions,
        )
