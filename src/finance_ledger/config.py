"""Configuration loading and validation for the finance ledger."""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import Optional

import yaml

from finance_ledger.models.account import Account
from finance_ledger.models.asset import AssetBook
from finance_ledger.models.category import CategoryRule, RuleTable
from finance_ledger.models.transaction import TransactionType
from finance_ledger.utils.date_utils import DEFAULT_DATE_FORMATS
from finance_ledger.utils.decimal_utils import safe_decimal
from finance_ledger.utils.logging_config import get_logger

logger = get_logger(__name__)


class ConfigError(Exception):
    """Exception raised for configuration errors."""

    pass


class ColumnLayout(Enum):
    """How a dialect records the amount of a transaction."""

    DEBIT_CREDIT = "debit_credit"  # Separate debit and credit columns
    SIGNED_AMOUNT = "signed_amount"  # One column, negative means money out


# Column roles each layout needs resolved from the header
REQUIRED_COLUMNS = {
    ColumnLayout.DEBIT_CREDIT: ("date", "description", "debit", "credit"),
    ColumnLayout.SIGNED_AMOUNT: ("date", "description", "amount"),
}

# Header keywords, matched as case-insensitive substrings of the header cells
DEFAULT_DEBIT_CREDIT_COLUMNS = {
    "date": ["fecha", "date"],
    "description": ["descripción", "descripcion", "description"],
    "debit": ["débito", "debito", "debit"],
    "credit": ["crédito", "credito", "credit"],
}
DEFAULT_SIGNED_AMOUNT_COLUMNS = {
    "date": ["date"],
    "description": ["description"],
    "amount": ["amount"],
}

DEFAULT_BANK_RULES = RuleTable(
    rules=(
        CategoryRule("Salary", ("atm", "2q", "1q"), TransactionType.CREDIT),
        CategoryRule("Transportation", ("delta", "servicentro"), TransactionType.DEBIT),
        CategoryRule(
            "Subscriptions",
            ("openai", "cursor", "seguro beld", "compass"),
            TransactionType.DEBIT,
        ),
        CategoryRule("Debt", ("pago",), TransactionType.DEBIT),
        CategoryRule("Savings", ("ahorro",), TransactionType.DEBIT),
    ),
    default="Misc",
    direction_defaults={TransactionType.CREDIT: "Other"},
)
DEFAULT_SAVINGS_RULES = RuleTable(
    rules=(
        CategoryRule("Emergency Fund", ("emergency",)),
        CategoryRule("Trips", ("trip", "travel", "vacation")),
        CategoryRule("Long term", ("long term", "investment")),
        CategoryRule("Interest", ("interest",)),
    ),
    default="Savings",
)
DEFAULT_TRANSFER_RULES = RuleTable(
    rules=(
        CategoryRule("Interactive Brokers", ("interactive brokers", "ibkr")),
        CategoryRule("Wise", ("expenses", "expense")),
    ),
    default="Wise",
)


@dataclass
class DialectConfig:
    """CSV layout, locale conventions and rule table of one transaction source.

    Attributes:
        name: Dialect identifier referenced by accounts.
        layout: Debit/credit columns or a single signed amount column.
        columns: Header keywords per column role; any keyword may match.
        date_formats: strptime formats tried in order.
        decimal_separator: "." or "," for the amount columns.
        rules: Categorization rule table.
    """

    name: str
    layout: ColumnLayout
    columns: dict[str, list[str]]
    date_formats: list[str] = field(default_factory=lambda: list(DEFAULT_DATE_FORMATS))
    decimal_separator: str = "."
    rules: RuleTable = field(default_factory=RuleTable)

    def __post_init__(self) -> None:
        missing = [role for role in REQUIRED_COLUMNS[self.layout] if not self.columns.get(role)]
        if missing:
            raise ConfigError(f"Dialect '{self.name}' has no keywords for: {', '.join(missing)}")
        if self.decimal_separator not in (".", ","):
            raise ConfigError(
                f"Dialect '{self.name}': decimal_separator must be '.' or ',', "
                f"got {self.decimal_separator!r}"
            )

    @classmethod
    def from_dict(cls, name: str, data: dict[str, object]) -> "DialectConfig":
        """Create from dictionary, falling back to the built-in dialect of the same name."""
        base = DEFAULT_DIALECTS.get(name)
        layout_str = str(data.get("layout", base.layout.value if base else "debit_credit"))
        try:
            layout = ColumnLayout(layout_str)
        except ValueError as e:
            raise ConfigError(f"Dialect '{name}': unknown layout '{layout_str}'") from e

        columns: dict[str, list[str]] = dict(base.columns) if base and base.layout is layout else {}
        for role, keywords in dict(data.get("columns", {}) or {}).items():  # type: ignore[call-overload]
            if isinstance(keywords, str):
                keywords = [keywords]
            columns[str(role)] = [str(k) for k in keywords]

        if "rules" in data or "default" in data:
            rules = RuleTable.from_dict(data)
        else:
            rules = base.rules if base else RuleTable()

        date_formats = data.get("date_formats")
        if date_formats is None:
            date_formats = base.date_formats if base else DEFAULT_DATE_FORMATS

        return cls(
            name=name,
            layout=layout,
            columns=columns,
            date_formats=list(date_formats),  # type: ignore[call-overload]
            decimal_separator=str(data.get("decimal_separator", base.decimal_separator if base else ".")),
            rules=rules,
        )


DEFAULT_DIALECTS: dict[str, DialectConfig] = {
    "debit_credit": DialectConfig(
        name="debit_credit",
        layout=ColumnLayout.DEBIT_CREDIT,
        columns=DEFAULT_DEBIT_CREDIT_COLUMNS,
        date_formats=["%d/%m/%Y"],
        rules=DEFAULT_BANK_RULES,
    ),
    "savings": DialectConfig(
        name="savings",
        layout=ColumnLayout.DEBIT_CREDIT,
        columns=DEFAULT_DEBIT_CREDIT_COLUMNS,
        date_formats=["%d/%m/%Y"],
        rules=DEFAULT_SAVINGS_RULES,
    ),
    "signed_amount": DialectConfig(
        name="signed_amount",
        layout=ColumnLayout.SIGNED_AMOUNT,
        columns=DEFAULT_SIGNED_AMOUNT_COLUMNS,
        date_formats=["%d-%m-%Y", "%d/%m/%Y", "%Y-%m-%d", "%Y/%m/%d"],
        rules=DEFAULT_TRANSFER_RULES,
    ),
}


@dataclass(frozen=True)
class TransferCheck:
    """A declared transfer route to reconcile: source debits vs destination credits."""

    source: str
    destination: str
    category: str

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> "TransferCheck":
        try:
            return cls(
                source=str(data["source"]),
                destination=str(data["destination"]),
                category=str(data["category"]),
            )
        except KeyError as e:
            raise ConfigError(f"Transfer check is missing {e}") from e


@dataclass
class ReconciliationConfig:
    """Configuration for cross-account transfer reconciliation.

    Attributes:
        tolerance: Largest difference (exclusive) still treated as a match.
        transfer_checks: Routes checked by `reconcile`.
    """

    tolerance: Decimal = field(default_factory=lambda: Decimal("1.0"))
    transfer_checks: list[TransferCheck] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> "ReconciliationConfig":
        """Create from dictionary."""
        checks = data.get("transfer_checks") or []
        if not isinstance(checks, list):
            raise ConfigError(f"'transfer_checks' must be a list, got {type(checks).__name__}")
        return cls(
            tolerance=safe_decimal(data.get("tolerance"), Decimal("1.0")),
            transfer_checks=[TransferCheck.from_dict(c) for c in checks],
        )


@dataclass
class AnalyticsConfig:
    """Configuration for analytics.

    Attributes:
        trend_months: Length of trend series.
        target_utilization: Budget utilization where the health score peaks.
        utilization_band: Utilization distance over which the score falls to zero.
        asset_income_category: Category under which asset revenue is credited.
    """

    trend_months: int = 12
    target_utilization: float = 0.8
    utilization_band: float = 0.2
    asset_income_category: str = "Asset Income"

    def __post_init__(self) -> None:
        if self.trend_months < 1:
            raise ConfigError(f"trend_months must be at least 1, got {self.trend_months}")
        if self.utilization_band <= 0:
            raise ConfigError(f"utilization_band must be positive, got {self.utilization_band}")

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> "AnalyticsConfig":
        """Create from dictionary."""
        return cls(
            trend_months=int(data.get("trend_months", 12)),  # type: ignore[arg-type]
            target_utilization=float(data.get("target_utilization", 0.8)),  # type: ignore[arg-type]
            utilization_band=float(data.get("utilization_band", 0.2)),  # type: ignore[arg-type]
            asset_income_category=str(data.get("asset_income_category", "Asset Income")),
        )


@dataclass
class ImportConfig:
    """Configuration for import orchestration.

    Attributes:
        max_workers: Threads used to parse files of one batch (1 = sequential).
    """

    max_workers: int = 1

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> "ImportConfig":
        """Create from dictionary."""
        return cls(max_workers=max(1, int(data.get("max_workers", 1))))  # type: ignore[arg-type]


@dataclass
class LoggingConfig:
    """Configuration for logging.

    Attributes:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        file: Path to log file.
    """

    level: str = "INFO"
    file: str = "finance_ledger.log"

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> "LoggingConfig":
        """Create from dictionary."""
        return cls(
            level=str(data.get("level", "INFO")),
            file=str(data.get("file", "finance_ledger.log")),
        )


@dataclass
class Config:
    """Main configuration container.

    Attributes:
        accounts: Dictionary of account ID to Account.
        file_mappings: Dictionary of filename to account ID.
        dialects: Dictionary of dialect name to DialectConfig.
        reconciliation: Transfer reconciliation configuration.
        analytics: Analytics configuration.
        import_settings: Import orchestration configuration.
        logging: Logging configuration.
        assets: Assets and their loans.
    """

    accounts: dict[str, Account] = field(default_factory=dict)
    file_mappings: dict[str, str] = field(default_factory=dict)
    dialects: dict[str, DialectConfig] = field(default_factory=lambda: dict(DEFAULT_DIALECTS))
    reconciliation: ReconciliationConfig = field(default_factory=ReconciliationConfig)
    analytics: AnalyticsConfig = field(default_factory=AnalyticsConfig)
    import_settings: ImportConfig = field(default_factory=ImportConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    assets: AssetBook = field(default_factory=AssetBook)

    def get_account_for_file(self, filename: str) -> Optional[Account]:
        """Get the account associated with a filename.

        First checks explicit file mappings, then pattern matching.

        Args:
            filename: The filename to look up.

        Returns:
            Account if found, None otherwise.
        """
        if filename in self.file_mappings:
            account_id = self.file_mappings[filename]
            return self.accounts.get(account_id)

        for account in sorted(self.accounts.values(), key=lambda a: a.display_order):
            if account.is_active and account.matches_file(filename):
                return account

        return None

    def get_dialect(self, name: str) -> DialectConfig:
        """Look up a dialect by name.

        Raises:
            ConfigError: If the dialect is not defined.
        """
        try:
            return self.dialects[name]
        except KeyError as e:
            raise ConfigError(
                f"Unknown dialect '{name}' (known: {', '.join(sorted(self.dialects))})"
            ) from e

    def validate(self) -> list[str]:
        """Cross-check references between accounts, dialects and transfer checks.

        Returns:
            List of problems found (empty when consistent).
        """
        problems = []
        for account in self.accounts.values():
            if account.dialect not in self.dialects:
                problems.append(f"Account '{account.id}' uses unknown dialect '{account.dialect}'")
        for filename, account_id in self.file_mappings.items():
            if account_id not in self.accounts:
                problems.append(f"File mapping '{filename}' points to unknown account '{account_id}'")
        for check in self.reconciliation.transfer_checks:
            for account_id in (check.source, check.destination):
                if account_id not in self.accounts:
                    problems.append(
                        f"Transfer check '{check.category}' references unknown account '{account_id}'"
                    )
        return problems


def load_yaml_file(path: Path) -> dict[str, object]:
    """Load a YAML file.

    Args:
        path: Path to the YAML file.

    Returns:
        Parsed YAML content.

    Raises:
        FileNotFoundError: If file doesn't exist.
        ConfigError: If the file is not a YAML mapping.
    """
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path, encoding="utf-8") as f:
        try:
            content = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if content is None:
        return {}
    if not isinstance(content, dict):
        raise ConfigError(f"{path} must contain a mapping, got {type(content).__name__}")
    return content


def load_settings(
    path: Path,
) -> tuple[ReconciliationConfig, AnalyticsConfig, ImportConfig, LoggingConfig]:
    """Load settings from settings.yaml.

    Args:
        path: Path to settings.yaml.

    Returns:
        Tuple of (ReconciliationConfig, AnalyticsConfig, ImportConfig, LoggingConfig).
    """
    data = load_yaml_file(path)

    reconciliation = ReconciliationConfig()
    if data.get("reconciliation"):
        reconciliation = ReconciliationConfig.from_dict(data["reconciliation"])  # type: ignore[arg-type]

    analytics = AnalyticsConfig()
    if data.get("analytics"):
        analytics = AnalyticsConfig.from_dict(data["analytics"])  # type: ignore[arg-type]

    import_settings = ImportConfig()
    if data.get("import"):
        import_settings = ImportConfig.from_dict(data["import"])  # type: ignore[arg-type]

    logging_config = LoggingConfig()
    if data.get("logging"):
        logging_config = LoggingConfig.from_dict(data["logging"])  # type: ignore[arg-type]

    return reconciliation, analytics, import_settings, logging_config


def load_accounts(path: Path) -> tuple[dict[str, Account], dict[str, str]]:
    """Load accounts and file mappings from accounts.yaml.

    Args:
        path: Path to accounts.yaml.

    Returns:
        Tuple of (accounts dict, file_mappings dict).
    """
    data = load_yaml_file(path)

    accounts: dict[str, Account] = {}
    accounts_data = data.get("accounts")
    try:
        if isinstance(accounts_data, dict):
            # Dict format: accounts: {id: {...}}
            for account_id, account_data in accounts_data.items():
                account_data = dict(account_data or {})
                account_data["id"] = account_id
                account = Account.from_dict(account_data)
                accounts[account.id] = account
        elif isinstance(accounts_data, list):
            # List format: accounts: [{id: ..., ...}]
            for account_data in accounts_data:
                account = Account.from_dict(account_data)
                accounts[account.id] = account
        elif accounts_data is not None:
            raise ConfigError(f"'accounts' must be a mapping or list, got {type(accounts_data).__name__}")
    except (KeyError, ValueError) as e:
        raise ConfigError(f"Invalid account definition in {path}: {e}") from e

    file_mappings: dict[str, str] = {}
    if data.get("file_mappings") is not None:
        file_mappings = {str(k): str(v) for k, v in dict(data["file_mappings"]).items()}  # type: ignore[call-overload]

    return accounts, file_mappings


def load_dialects(path: Path) -> dict[str, DialectConfig]:
    """Load dialect definitions from dialects.yaml, merged over the built-ins.

    Args:
        path: Path to dialects.yaml.

    Returns:
        Dictionary of dialect name to DialectConfig.
    """
    data = load_yaml_file(path)

    dialects = dict(DEFAULT_DIALECTS)
    dialect_data = data.get("dialects")
    if dialect_data is None:
        return dialects
    if not isinstance(dialect_data, dict):
        raise ConfigError(f"'dialects' must be a mapping, got {type(dialect_data).__name__}")

    for name, definition in dialect_data.items():
        try:
            dialects[str(name)] = DialectConfig.from_dict(str(name), dict(definition or {}))
        except ValueError as e:
            raise ConfigError(f"Invalid dialect '{name}' in {path}: {e}") from e

    return dialects


def load_assets(path: Path) -> AssetBook:
    """Load assets and their loans from assets.yaml.

    Args:
        path: Path to assets.yaml.

    Returns:
        AssetBook (empty when the file lists no assets).
    """
    data = load_yaml_file(path)
    try:
        return AssetBook.from_dict(data.get("assets"))
    except (KeyError, TypeError, ValueError) as e:
        raise ConfigError(f"Invalid asset definition in {path}: {e}") from e


def load_config(
    settings_path: Optional[Path] = None,
    accounts_path: Optional[Path] = None,
    dialects_path: Optional[Path] = None,
    assets_path: Optional[Path] = None,
    config_dir: Optional[Path] = None,
) -> Config:
    """Load complete configuration from all config files.

    Every file is optional; missing files leave the defaults in place.

    Args:
        settings_path: Path to settings.yaml (or None to use default).
        accounts_path: Path to accounts.yaml (or None to use default).
        dialects_path: Path to dialects.yaml (or None to use default).
        assets_path: Path to assets.yaml (or None to use default).
        config_dir: Base config directory (default: ./config).

    Returns:
        Complete Config object.

    Raises:
        ConfigError: If a file is malformed or references are inconsistent.
    """
    if config_dir is None:
        config_dir = Path("config")

    if settings_path is None:
        settings_path = config_dir / "settings.yaml"
    if accounts_path is None:
        accounts_path = config_dir / "accounts.yaml"
    if dialects_path is None:
        dialects_path = config_dir / "dialects.yaml"
    if assets_path is None:
        assets_path = config_dir / "assets.yaml"

    config = Config()

    if settings_path.exists():
        (
            config.reconciliation,
            config.analytics,
            config.import_settings,
            config.logging,
        ) = load_settings(settings_path)
        logger.info(f"Loaded settings from {settings_path}")
    else:
        logger.warning(f"Settings file not found: {settings_path}, using defaults")

    if dialects_path.exists():
        config.dialects = load_dialects(dialects_path)
        logger.info(f"Loaded {len(config.dialects)} dialects from {dialects_path}")

    if accounts_path.exists():
        config.accounts, config.file_mappings = load_accounts(accounts_path)
        logger.info(f"Loaded {len(config.accounts)} accounts from {accounts_path}")
    else:
        logger.warning(f"Accounts file not found: {accounts_path}")

    if assets_path.exists():
        config.assets = load_assets(assets_path)
        logger.info(f"Loaded {len(config.assets)} assets from {assets_path}")

    problems = config.validate()
    if problems:
        raise ConfigError("; ".join(problems))

    return config
