"""Import orchestration: parse delivered files and merge them into ledgers."""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from pathlib import PurePath
from typing import Optional, Sequence, Union

from finance_ledger.config import Config
from finance_ledger.models.account import Account
from finance_ledger.models.transaction import Transaction, TransactionType
from finance_ledger.parsers.base import BaseParser
from finance_ledger.parsers.csv_parser import get_parser
from finance_ledger.processing.categorizer import categorize
from finance_ledger.utils.logging_config import LogContext, get_logger

logger = get_logger(__name__)

RawFile = tuple[str, Union[bytes, str]]


@dataclass
class FileImport:
    """Outcome of importing one delivered file."""

    source: str
    parsed: int = 0
    imported: int = 0
    duplicates: int = 0


@dataclass
class ImportResult:
    """Outcome of one import call into one account."""

    account_id: str
    files: list[FileImport] = field(default_factory=list)

    @property
    def parsed(self) -> int:
        return sum(f.parsed for f in self.files)

    @property
    def imported(self) -> int:
        return sum(f.imported for f in self.files)

    @property
    def duplicates(self) -> int:
        return sum(f.duplicates for f in self.files)

    @property
    def empty_files(self) -> list[str]:
        """Files that yielded nothing importable (bad header or no rows)."""
        return [f.source for f in self.files if f.parsed == 0]


class ImportOrchestrator:
    """Feeds parsed batches into account ledgers with dedup.

    A candidate is added only if no entry with the same date, description,
    amount and direction is already in the ledger or earlier in the same
    call. Parsing of the files of one call may run on a thread pool; the
    merge runs under the ledger's lock.
    """

    def __init__(self, config: Optional[Config] = None, max_workers: Optional[int] = None):
        """Initialize orchestrator.

        Args:
            config: Configuration with dialects and file routing (defaults if None).
            max_workers: Parser threads per call; defaults to the configured value.
        """
        self.config = config or Config()
        self.max_workers = max_workers or self.config.import_settings.max_workers
        self._parsers: dict[str, BaseParser] = {}

    def parser_for(self, account: Account) -> BaseParser:
        """Get (and cache) the parser for an account's dialect.

        Raises:
            ConfigError: If the account's dialect is unknown.
        """
        if account.dialect not in self._parsers:
            self._parsers[account.dialect] = get_parser(self.config.get_dialect(account.dialect))
        return self._parsers[account.dialect]

    def import_batch(self, account: Account, raw_files: Sequence[Union[bytes, str]]) -> int:
        """Import raw file contents into an account.

        Args:
            account: Target account.
            raw_files: File contents in processing order.

        Returns:
            Number of transactions added to the ledger.
        """
        files = [(f"file-{i}", raw) for i, raw in enumerate(raw_files, start=1)]
        return self.import_files(account, files).imported

    def import_files(self, account: Account, files: Sequence[RawFile]) -> ImportResult:
        """Import named files into an account.

        Args:
            account: Target account.
            files: (source identifier, content) pairs in processing order.

        Returns:
            ImportResult with per-file counts.
        """
        parser = self.parser_for(account)
        result = ImportResult(account_id=account.id)

        with LogContext(logger, "import", account=account.id, files=len(files)):
            parsed_batches = self._parse_all(parser, files)

            with account.ledger.lock:
                seen = account.ledger.dedup_keys()
                new_transactions: list[Transaction] = []
                for (source, _), candidates in zip(files, parsed_batches):
                    file_result = FileImport(source=source, parsed=len(candidates))
                    for txn in candidates:
                        if txn.dedup_key in seen:
                            file_result.duplicates += 1
                            continue
                        seen.add(txn.dedup_key)
                        new_transactions.append(txn)
                        file_result.imported += 1
                    result.files.append(file_result)
                account.ledger.extend(new_transactions)

        logger.info(
            f"Imported {result.imported} of {result.parsed} transactions into {account.id} "
            f"({result.duplicates} duplicates, {len(result.empty_files)} empty files)"
        )
        return result

    def _parse_all(self, parser: BaseParser, files: Sequence[RawFile]) -> list[list[Transaction]]:
        """Parse every file, keeping the input order."""
        if self.max_workers <= 1 or len(files) <= 1:
            return [parser.parse(raw, source) for source, raw in files]

        workers = min(self.max_workers, len(files))
        logger.debug(f"Parsing {len(files)} files with {workers} threads")
        with ThreadPoolExecutor(max_workers=workers) as executor:
            return list(executor.map(lambda f: parser.parse(f[1], f[0]), files))

    def add_manual(
        self,
        account: Account,
        txn_date: date,
        description: str,
        amount: Decimal,
        direction: TransactionType,
        category: Optional[str] = None,
    ) -> Transaction:
        """Record a manually entered transaction.

        When no category is given, the account's dialect rules pick one.

        Raises:
            ValueError: If amount is negative.
        """
        if category is None:
            category = categorize(
                description, direction, self.config.get_dialect(account.dialect).rules
            )
        txn = Transaction(
            date=txn_date,
            description=description.strip(),
            category=category,
            amount=amount,
            transaction_type=direction,
            source_file="manual",
        )
        with account.ledger.lock:
            account.ledger.add(txn)
        logger.info(f"Added manual {direction.value} of {amount} to {account.id} as '{category}'")
        return txn

    def route_files(self, files: Sequence[RawFile]) -> tuple[dict[str, list[RawFile]], list[str]]:
        """Assign delivered files to accounts by file mapping or glob pattern.

        Args:
            files: (source identifier, content) pairs.

        Returns:
            Tuple of (account id -> files in delivery order, unmatched sources).
        """
        routed: dict[str, list[RawFile]] = {}
        unmatched: list[str] = []
        for source, raw in files:
            account = self.config.get_account_for_file(PurePath(source).name)
            if account is None:
                logger.warning(f"No account configured for {source}")
                unmatched.append(source)
                continue
            routed.setdefault(account.id, []).append((source, raw))
        return routed, unmatched

