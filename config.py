import json
import logging
import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

APP_NAME = "Retirement Projection Engine"

# Default assumptions (Israel-leaning; all amounts monthly, in ILS, rates in %)
DEFAULTS = {
    "current_age": 30,
    "retirement_age": 67,
    "risk_tolerance": "moderate",

    # Balances today
    "current_savings": 50_000,
    "current_training_fund": 20_000,
    "current_personal_portfolio": 0,
    "current_crypto": 0,
    "current_real_estate": 0,

    # Monthly contributions outside the work periods
    "training_fund_monthly": 0,
    "personal_portfolio_monthly": 0,
    "crypto_monthly": 0,
    "real_estate_monthly": 0,

    # Expected nominal returns (%/yr)
    "training_fund_return": None,     # None = weighted from the allocation
    "personal_portfolio_return": 7.0,
    "crypto_return": 10.0,
    "real_estate_return": 6.0,
    "training_fund_management_fee": 0.6,

    # Flat taxes on withdrawals (%)
    "personal_portfolio_tax_rate": 25.0,
    "crypto_tax_rate": 25.0,
    "real_estate_tax_rate": 25.0,
    "real_estate_rental_yield": 3.0,

    # Needs
    "inflation_rate": 3.0,
    "current_monthly_expenses": 12_000,
    "target_replacement": 70.0,
}

# Exchange rates are units of each currency per one ILS.
CURRENCY = {
    "base": "ILS",
    "supported": ["ILS", "USD", "EUR", "GBP", "BTC", "ETH"],
    "ttl_seconds": 300,
    "timeout_seconds": 5.0,
    "live_rates": True,
    "fallback_rates": {
        "USD": 1 / 3.70,
        "EUR": 1 / 4.02,
        "GBP": 1 / 4.65,
        "BTC": 1 / 150_000,
        "ETH": 1 / 10_000,
    },
    # Plausible ILS price per unit; rates outside are replaced by the fallback
    "price_boundaries": {
        "USD": (2.5, 5.0),
        "EUR": (3.0, 6.0),
        "GBP": (3.5, 7.0),
        "BTC": (1_000, 1_000_000),
        "ETH": (100, 100_000),
    },
    "endpoints": {
        "fiat": "https://api.exchangerate-api.com/v4/latest/ILS",
        "crypto": "https://api.coingecko.com/api/v3/simple/price?ids=bitcoin,ethereum&vs_currencies=ils",
    },
    "symbols": {
        "ILS": "₪",
        "USD": "$",
        "GBP": "£",
        "EUR": "€",
        "BTC": "₿",
        "ETH": "Ξ",
    },
}

LOGGING = {
    "level": "INFO",
    "format": "text",
    "file": None,
    "enabled": True,
}


class JsonFormatter(logging.Formatter):
    """Format log records as single-line JSON."""

    def format(self, record: logging.LogRecord) -> str:
        data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            data["exception"] = self.formatException(record.exc_info)
        return json.dumps(data)


def setup_logging(
    level: Optional[str] = None,
    log_file: Optional[str] = None,
    format_type: Optional[str] = None,
    enabled: Optional[bool] = None,
) -> None:
    """Configure root logging from arguments, falling back to LOGGING and LOG_LEVEL."""
    if enabled is None:
        enabled = LOGGING["enabled"]
    if not enabled:
        logging.disable(logging.CRITICAL)
        return

    level = level or os.getenv("LOG_LEVEL", LOGGING["level"])
    format_type = format_type or LOGGING["format"]
    log_file = log_file or LOGGING["file"]

    if format_type == "json":
        formatter = JsonFormatter()
    else:
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(formatter)
    handlers = [console]

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        handlers=handlers,
        force=True,
    )
