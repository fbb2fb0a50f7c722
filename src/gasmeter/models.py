"""Data models for meter readings, tariffs and derived analytics."""

from dataclasses import dataclass, field
from datetime import date, datetime

# Confidence labels for regression-based forecasts
CONFIDENCE_HIGH = "High"
CONFIDENCE_MEDIUM = "Medium"
CONFIDENCE_LOW = "Low"


@dataclass(frozen=True)
class Reading:
    """A timestamped cumulative meter value (m³)."""

    id: str
    timestamp: datetime
    value: float


@dataclass(frozen=True)
class TariffConfig:
    """Gas tariff settings used by the cost model."""

    unit_price: float = 0.04293925  # currency per kWh
    daily_fixed_charge: float = 0.26663
    conversion_factor: float = 10.9130  # m³ -> kWh
    tax_rate: float = 0.00234  # consumption levy per kWh
    vat_rate: float = 0.21


@dataclass(frozen=True)
class CostBreakdown:
    """A cost split into its components."""

    variable: float
    fixed: float
    tax: float
    vat: float
    total: float

    @property
    def total_tax(self) -> float:
        """Consumption levy plus VAT."""
        return self.tax + self.vat


@dataclass(frozen=True)
class NormalizedPoint:
    """An interpolated meter value at the start of a calendar day."""

    day: date
    value: float


@dataclass(frozen=True)
class DailyObservation:
    """Usage and cost between two adjacent normalized points."""

    day: date
    usage: float
    cost: float
    daily_cost: float
    temperature: float | None = None
    elapsed_days: float = 1.0

    @property
    def rate(self) -> float:
        """Usage per day."""
        return self.usage / self.elapsed_days


@dataclass(frozen=True)
class RegressionModel:
    """Linear fit of daily usage against mean temperature."""

    slope: float
    intercept: float
    r_squared: float | None  # None when usage has zero variance
    sample_count: int

    def predict(self, temperature: float) -> float:
        return self.slope * temperature + self.intercept


@dataclass(frozen=True)
class ProjectionPoint:
    """Projected 30-day cost as of a given day."""

    day: date
    projected_monthly_cost: float


@dataclass(frozen=True)
class Projection:
    """Naive and anomaly-excluding projection series."""

    naive: tuple[ProjectionPoint, ...]
    smart: tuple[ProjectionPoint, ...]


@dataclass(frozen=True)
class ForecastDay:
    """Predicted usage for one forecast day."""

    day: date
    predicted_usage: float
    temperature: float


@dataclass(frozen=True)
class ForecastResult:
    """Predicted usage and cost over the forecast horizon."""

    average_temperature: float | None
    total_predicted_usage: float | None
    projected_cost: float | None
    confidence: str | None
    days: tuple[ForecastDay, ...] = ()

    @classmethod
    def empty(cls) -> "ForecastResult":
        return cls(None, None, None, None, ())

    @property
    def available(self) -> bool:
        return bool(self.days)


@dataclass(frozen=True)
class TemperatureStore:
    """Mean daily temperatures keyed by date.

    Days on or before ``today`` are observed; later days are forecasts.
    """

    samples: dict[date, float] = field(default_factory=dict)
    today: date = field(default_factory=date.today)

    @classmethod
    def from_caches(
        cls,
        observed: dict[date, float],
        forecast: dict[date, float],
        today: date | None = None,
    ) -> "TemperatureStore":
        """Build a store from separate observed and forecast maps.

        Observed samples after ``today`` and forecast samples on or before it
        are dropped, so the two views can never overlap.
        """
        today = today or date.today()
        samples = {d: t for d, t in forecast.items() if d > today}
        samples.update({d: t for d, t in observed.items() if d <= today})
        return cls(samples=samples, today=today)

    def is_observed(self, day: date) -> bool:
        return day <= self.today

    def get(self, day: date) -> float | None:
        return self.samples.get(day)

    def observed(self) -> dict[date, float]:
        return {d: t for d, t in self.samples.items() if self.is_observed(d)}

    def forecast(self) -> dict[date, float]:
        return {d: t for d, t in self.samples.items() if not self.is_observed(d)}


@dataclass(frozen=True)
class MeterSnapshot:
    """Everything the analytics need for one computation."""

    readings: tuple[Reading, ...]
    tariff: TariffConfig
    temperatures: TemperatureStore = field(default_factory=TemperatureStore)


@dataclass(frozen=True)
class ReadingDelta:
    """Usage and cost since the previous raw reading."""

    reading: Reading
    usage: float | None = None
    days: float | None = None
    cost: float | None = None


@dataclass(frozen=True)
class RangeSummary:
    """Consumption between two readings."""

    start: Reading
    end: Reading
    days: float
    usage: float
    cost: float
    monthly_projection: float
    breakdown: CostBreakdown


@dataclass(frozen=True)
class EfficiencyPoint:
    """Usage per heating degree-day."""

    day: date
    usage_per_degree_day: float
