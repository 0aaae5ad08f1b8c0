"""Cross-account transfer reconciliation."""

from decimal import Decimal
from typing import Iterable, Mapping, Optional

from finance_ledger.config import TransferCheck
from finance_ledger.models.account import Account
from finance_ledger.models.report import CashFlowVerdict, TransferVerdict
from finance_ledger.utils.decimal_utils import format_currency
from finance_ledger.utils.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_TOLERANCE = Decimal("1.0")


class ReconciliationEngine:
    """Checks that transfers recorded on both sides of a route agree.

    A transfer route is directional: the source account records the money
    leaving as debits under a category, the destination records it arriving
    as credits under the same category. The totals match when their absolute
    difference is strictly below the tolerance. Verdicts are always returned,
    never raised.
    """

    def __init__(
        self,
        tolerance: Decimal = DEFAULT_TOLERANCE,
        asset_income_category: str = "Asset Income",
    ):
        """Initialize reconciliation engine.

        Args:
            tolerance: Largest difference (exclusive) treated as rounding noise.
            asset_income_category: Category of asset revenue credits.
        """
        self.tolerance = tolerance
        self.asset_income_category = asset_income_category

    def validate_transfer(self, source: Account, destination: Account, category: str) -> TransferVerdict:
        """Compare debits leaving source with credits arriving in destination.

        Args:
            source: Account the money left.
            destination: Account the money arrived in.
            category: Transfer category both sides record.

        Returns:
            TransferVerdict with both totals and the difference.
        """
        outgoing = source.ledger.debits_for(category)
        incoming = destination.ledger.credits_for(category)
        difference = abs(incoming - outgoing)
        is_valid = difference < self.tolerance

        route = f"{source.name} → {destination.name} ({category})"
        if is_valid:
            message = f"{route}: transfers match"
        else:
            message = f"{route}: mismatch of {format_currency(difference)}"

        verdict = TransferVerdict(
            source_account=source.id,
            destination_account=destination.id,
            category=category,
            outgoing=outgoing,
            incoming=incoming,
            is_valid=is_valid,
            message=message,
        )
        if is_valid:
            logger.debug(message)
        else:
            logger.warning(f"{message} (out {outgoing}, in {incoming})")
        return verdict

    def validate_incoming(self, destination: Account, source: Account, category: str) -> TransferVerdict:
        """Same check as `validate_transfer`, with the receiving account named first.

        The verdict is identical to `validate_transfer(source, destination, category)`.
        """
        return self.validate_transfer(source, destination, category)

    def reconcile(
        self, accounts: Mapping[str, Account], checks: Iterable[TransferCheck]
    ) -> list[TransferVerdict]:
        """Run a list of configured transfer checks.

        Checks naming an account that is not present are skipped with a warning.

        Args:
            accounts: Accounts by id.
            checks: Transfer routes to verify.

        Returns:
            One verdict per check that could run, in the given order.
        """
        verdicts = []
        for check in checks:
            source: Optional[Account] = accounts.get(check.source)
            destination: Optional[Account] = accounts.get(check.destination)
            if source is None or destination is None:
                logger.warning(
                    f"Skipping transfer check {check.source} → {check.destination}: account not loaded"
                )
                continue
            verdicts.append(self.validate_transfer(source, destination, check.category))

        failed = sum(1 for v in verdicts if not v.is_valid)
        logger.info(f"Reconciled {len(verdicts)} transfer routes, {failed} mismatched")
        return verdicts

    def validate_asset_cash_flow(self, account: Account, asset_names: Iterable[str]) -> CashFlowVerdict:
        """Check that every revenue-generating asset has at least one income credit.

        An asset counts as covered when a credit in the asset income category
        has a description containing the asset's name.

        Args:
            account: Account receiving asset income.
            asset_names: Names of revenue-generating assets.

        Returns:
            CashFlowVerdict listing assets without any income credit.
        """
        income_descriptions = [
            t.description for t in account.ledger.credits if t.category == self.asset_income_category
        ]
        missing = [
            name
            for name in asset_names
            if not any(name in description for description in income_descriptions)
        ]

        if missing:
            message = f"Missing cash flow for: {', '.join(missing)}"
            logger.warning(f"{account.id}: {message}")
        else:
            message = "Cash flow validated"
        return CashFlowVerdict(is_valid=not missing, message=message, missing_assets=missing)
