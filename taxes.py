"""
Simplified progressive income tax and pension tax rules per country.
Goal: realistic ballpark figures, not every edge case of each tax code.

We model: taxable brackets + rates applied after allowances, tax credits,
capped social-insurance contributions, and a flat pension tax rate with a
social-security stipend used by the retirement projection.
All bracket amounts are annual, in the country's own currency.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from errors import CalculationError, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_PENSION_TAX = 0.25


@dataclass(frozen=True)
class Bracket:
    min: float
    max: float    # math.inf for the top bracket
    rate: float   # marginal rate, e.g. 0.20 for 20%


@dataclass(frozen=True)
class SocialInsurance:
    name: str
    rate: float
    floor: float = 0.0
    ceiling: Optional[float] = None


@dataclass(frozen=True)
class Deduction:
    name: str
    amount: float
    kind: str = "allowance"              # "allowance" reduces income, "credit" reduces tax
    taper_start: Optional[float] = None  # UK-style: allowance shrinks above this income
    taper_ratio: float = 0.5             # £1 lost per £2 => 0.5


@dataclass(frozen=True)
class CountryTaxProfile:
    code: str
    name: str
    flag: str
    currency: str
    pension_tax: float                   # flat rate on pension income
    social_security: float               # monthly state stipend, ILS
    brackets: List[Bracket] = field(default_factory=list)
    social_insurance: List[SocialInsurance] = field(default_factory=list)
    deductions: List[Deduction] = field(default_factory=list)
    training_fund_tax: float = 0.0


@dataclass
class BracketDetail:
    min: float
    max: float
    rate: float
    taxable_amount: float
    tax: float


@dataclass
class IncomeTax:
    total_tax: float
    marginal_rate: float
    details: List[BracketDetail] = field(default_factory=list)


@dataclass
class LineItem:
    name: str
    amount: float
    rate: Optional[float] = None


@dataclass
class TaxBreakdown:
    tax_bracket_details: List[BracketDetail]
    social_insurance_details: List[LineItem]
    deductions: List[LineItem]


@dataclass
class NetSalary:
    country: str
    currency: str
    gross_salary: float
    income_tax: float
    social_insurance: float
    total_tax: float
    effective_tax_rate: float    # % of gross
    net_salary: float
    marginal_tax_rate: float     # %
    breakdown: TaxBreakdown


def _israel():
    # 2025 brackets; 2.25 credit points at 242/month
    return CountryTaxProfile(
        code="israel", name="Israel", flag="🇮🇱", currency="ILS",
        pension_tax=0.15, social_security=2500,
        brackets=[
            Bracket(0, 81_480, 0.10),
            Bracket(81_480, 116_760, 0.14),
            Bracket(116_760, 188_280, 0.20),
            Bracket(188_280, 269_280, 0.31),
            Bracket(269_280, 558_240, 0.35),
            Bracket(558_240, 718_440, 0.47),
            Bracket(718_440, math.inf, 0.50),
        ],
        social_insurance=[
            SocialInsurance("National Insurance", 0.12, ceiling=494_580),
            SocialInsurance("Health Insurance", 0.031),
        ],
        deductions=[Deduction("Credit points", 2.25 * 242 * 12, kind="credit")],
    )


def _usa():
    # Federal only, single filer, 2024
    return CountryTaxProfile(
        code="usa", name="USA", flag="🇺🇸", currency="USD",
        pension_tax=0.12, social_security=1800,
        brackets=[
            Bracket(0, 11_600, 0.10),
            Bracket(11_600, 47_150, 0.12),
            Bracket(47_150, 100_525, 0.22),
            Bracket(100_525, 191_950, 0.24),
            Bracket(191_950, 243_725, 0.32),
            Bracket(243_725, 609_350, 0.35),
            Bracket(609_350, math.inf, 0.37),
        ],
        social_insurance=[
            SocialInsurance("Social Security", 0.062, ceiling=168_600),
            SocialInsurance("Medicare", 0.0145),
        ],
        deductions=[Deduction("Standard deduction", 14_600)],
    )


def _uk():
    # 2024/25; personal allowance tapers £1 per £2 over £100k
    return CountryTaxProfile(
        code="uk", name="UK", flag="🇬🇧", currency="GBP",
        pension_tax=0.20, social_security=1400,
        brackets=[
            Bracket(0, 37_700, 0.20),
            Bracket(37_700, 125_140, 0.40),
            Bracket(125_140, math.inf, 0.45),
        ],
        social_insurance=[
            SocialInsurance("National Insurance", 0.08, floor=12_570, ceiling=50_270),
            SocialInsurance("National Insurance (upper)", 0.02, floor=50_270),
        ],
        deductions=[Deduction("Personal allowance", 12_570, taper_start=100_000)],
    )


def _germany():
    # Stepwise approximation of the continuous German curve
    return CountryTaxProfile(
        code="germany", name="Germany", flag="🇩🇪", currency="EUR",
        pension_tax=0.22, social_security=1500,
        brackets=[
            Bracket(0, 62_810, 0.20),
            Bracket(62_810, 277_825, 0.42),
            Bracket(277_825, math.inf, 0.45),
        ],
        social_insurance=[
            SocialInsurance("Pension insurance", 0.093, ceiling=90_600),
            SocialInsurance("Unemployment insurance", 0.013, ceiling=90_600),
            SocialInsurance("Health insurance", 0.0815, ceiling=62_100),
            SocialInsurance("Care insurance", 0.017, ceiling=62_100),
        ],
        deductions=[Deduction("Grundfreibetrag", 11_604)],
    )


def _france():
    # Single "part", no quotient familial
    return CountryTaxProfile(
        code="france", name="France", flag="🇫🇷", currency="EUR",
        pension_tax=0.18, social_security=1600,
        brackets=[
            Bracket(0, 11_294, 0.0),
            Bracket(11_294, 28_797, 0.11),
            Bracket(28_797, 82_341, 0.30),
            Bracket(82_341, 177_106, 0.41),
            Bracket(177_106, math.inf, 0.45),
        ],
        social_insurance=[
            SocialInsurance("CSG/CRDS", 0.097),
            SocialInsurance("Old-age insurance", 0.069, ceiling=46_368),
        ],
    )


COUNTRIES = {
    "israel": _israel(),
    "usa": _usa(),
    "uk": _uk(),
    "germany": _germany(),
    "france": _france(),
}


def get_country(code: str) -> CountryTaxProfile:
    profile = COUNTRIES.get((code or "").lower())
    if profile is None:
        raise CalculationError(f"Unsupported country for tax lookup: {code!r}")
    return profile


def income_tax(annual_income: float, brackets: Sequence[Bracket]) -> IncomeTax:
    """
    Walk the brackets in ascending order, taxing the slice of income that
    falls into each. Income exactly on a boundary is taxed once, in the
    lower bracket, and that bracket's rate is the marginal rate.
    """
    total = 0.0
    marginal = 0.0
    remaining = annual_income
    details = []
    for b in brackets:
        if remaining <= 0:
            break
        taxable = min(remaining, b.max - b.min)
        if taxable > 0:
            tax = taxable * b.rate
            total += tax
            marginal = b.rate
            remaining -= taxable
            details.append(BracketDetail(b.min, b.max, b.rate, taxable, tax))
    return IncomeTax(total_tax=total, marginal_rate=marginal, details=details)


def _allowance(deduction: Deduction, gross: float) -> float:
    if deduction.taper_start is None or gross <= deduction.taper_start:
        return deduction.amount
    reduction = (gross - deduction.taper_start) * deduction.taper_ratio
    return max(0.0, deduction.amount - reduction)


def _contribution(item: SocialInsurance, gross: float) -> float:
    capped = gross if item.ceiling is None else min(gross, item.ceiling)
    return max(0.0, capped - item.floor) * item.rate


def calculate_net_salary(gross_amount: float, country: str, is_annual: bool = False) -> NetSalary:
    """
    Net salary after income tax and social insurance.
    Amounts in the result are in the same period (monthly or annual) as the input.
    """
    if gross_amount is None or not math.isfinite(gross_amount) or gross_amount < 0:
        raise ValidationError(f"Gross salary must be a non-negative number, got {gross_amount!r}")
    profile = get_country(country)

    periods = 1 if is_annual else 12
    annual = gross_amount * periods

    deductions = []
    allowances = 0.0
    credits = 0.0
    for d in profile.deductions:
        if d.kind == "credit":
            credits += d.amount
            deductions.append(LineItem(d.name, d.amount / periods))
        else:
            amount = _allowance(d, annual)
            allowances += amount
            deductions.append(LineItem(d.name, amount / periods))

    taxable = max(0.0, annual - allowances)
    walk = income_tax(taxable, profile.brackets)
    tax_after_credits = max(0.0, walk.total_tax - credits)

    insurance = []
    insurance_total = 0.0
    for item in profile.social_insurance:
        amount = _contribution(item, annual)
        insurance_total += amount
        insurance.append(LineItem(item.name, amount / periods, item.rate * 100))

    total = tax_after_credits + insurance_total
    effective = (total / annual * 100) if annual > 0 else 0.0

    logger.debug("Net salary for %s: gross=%.2f tax=%.2f", profile.code, annual, total)
    return NetSalary(
        country=profile.name,
        currency=profile.currency,
        gross_salary=gross_amount,
        income_tax=tax_after_credits / periods,
        social_insurance=insurance_total / periods,
        total_tax=total / periods,
        effective_tax_rate=round(effective, 2),
        net_salary=(annual - total) / periods,
        marginal_tax_rate=round(walk.marginal_rate * 100, 2),
        breakdown=TaxBreakdown(
            tax_bracket_details=[
                BracketDetail(b.min, b.max, b.rate, b.taxable_amount / periods, b.tax / periods)
                for b in walk.details
            ],
            social_insurance_details=insurance,
            deductions=deductions,
        ),
    )


def blended_pension_tax_rate(period_results, work_periods=(), default: float = DEFAULT_PENSION_TAX) -> float:
    """
    One effective pension tax rate for a multi-country career.

    Each period's country rate is weighted by the balance growth during that
    period (not its closing balance). With no positive growth the first
    listed work period's country rate is used, then `default`.
    """
    weighted = 0.0
    total_growth = 0.0
    for result in period_results:
        rate = get_country(result.country).pension_tax
        weighted += rate * result.growth
        total_growth += result.growth

    if total_growth > 0:
        return weighted / total_growth

    if work_periods:
        profile = COUNTRIES.get((work_periods[0].country or "").lower())
        if profile is not None:
            return profile.pension_tax
    logger.warning("No growth and no usable work period; using default pension tax %.2f", default)
    return default
