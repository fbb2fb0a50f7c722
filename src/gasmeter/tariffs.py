"""Tariff loading and cost calculation."""

import logging
from dataclasses import fields
from pathlib import Path

import yaml

from .db import get_connection
from .models import CostBreakdown, TariffConfig

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parent.parent.parent / "config" / "tariff.yaml"

# YAML key -> TariffConfig field
YAML_KEYS = {
    "price": "unit_price",
    "fixed": "daily_fixed_charge",
    "conversion": "conversion_factor",
    "tax_rate": "tax_rate",
    "vat": "vat_rate",
}


def get_config_path() -> Path:
    """Find the tariff.yaml config file."""
    candidates = [
        Path.cwd() / "config" / "tariff.yaml",
        DEFAULT_CONFIG_PATH,
        Path.home() / ".config" / "gas-meter" / "tariff.yaml",
    ]
    for path in candidates:
        if path.exists():
            return path
    raise FileNotFoundError("Could not find config/tariff.yaml")


def load_tariff_from_yaml(config_path: Path | None = None) -> TariffConfig:
    """Load tariff settings from YAML config file.

    Keys left out of the file keep their default values.
    """
    path = config_path or get_config_path()
    with open(path) as f:
        data = yaml.safe_load(f) or {}

    section = data.get("tariff", data)
    values = {
        attr: float(section[key]) for key, attr in YAML_KEYS.items() if section.get(key) is not None
    }
    logger.debug("Loaded tariff from %s: %s", path, values)
    return TariffConfig(**values)


def save_tariff_to_db(tariff: TariffConfig, db_path: Path | None = None) -> None:
    """Store the tariff as the single settings row."""
    with get_connection(db_path) as conn:
        conn.execute(
            """INSERT OR REPLACE INTO tariff
               (id, unit_price, daily_fixed_charge, conversion_factor, tax_rate, vat_rate)
               VALUES (1, ?, ?, ?, ?, ?)""",
            (
                tariff.unit_price,
                tariff.daily_fixed_charge,
                tariff.conversion_factor,
                tariff.tax_rate,
                tariff.vat_rate,
            ),
        )
        conn.commit()


def load_tariff_from_db(db_path: Path | None = None) -> TariffConfig:
    """Load the stored tariff, falling back to the defaults if none is set."""
    with get_connection(db_path) as conn:
        row = conn.execute("SELECT * FROM tariff WHERE id = 1").fetchone()

    if not row:
        logger.info("No tariff stored, using defaults")
        return TariffConfig()

    return TariffConfig(**{f.name: row[f.name] for f in fields(TariffConfig)})


def cost_breakdown(usage_m3: float, elapsed_days: float, tariff: TariffConfig) -> CostBreakdown:
    """Split the cost of a consumption into variable, fixed, tax and VAT parts.

    The consumption levy (``tax``) and VAT are kept apart; use
    ``CostBreakdown.total_tax`` for the combined figure. Negative usage is
    a meter anomaly and costs nothing.
    """
    if usage_m3 < 0:
        return CostBreakdown(variable=0.0, fixed=0.0, tax=0.0, vat=0.0, total=0.0)

    energy = usage_m3 * tariff.conversion_factor
    variable = energy * tariff.unit_price
    fixed = elapsed_days * tariff.daily_fixed_charge
    tax = energy * tariff.tax_rate
    subtotal = variable + fixed + tax
    vat = subtotal * tariff.vat_rate

    return CostBreakdown(variable=variable, fixed=fixed, tax=tax, vat=vat, total=subtotal + vat)


def calculate_cost(usage_m3: float, elapsed_days: float, tariff: TariffConfig) -> float:
    """Calculate the cost of consuming ``usage_m3`` over ``elapsed_days``."""
    if usage_m3 < 0:
        return 0.0

    energy = usage_m3 * tariff.conversion_factor
    variable = energy * tariff.unit_price
    fixed = elapsed_days * tariff.daily_fixed_charge
    tax = energy * tariff.tax_rate
    return (variable + fixed + tax) * (1 + tariff.vat_rate)
