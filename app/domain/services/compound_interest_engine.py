"""
COMPOUND INTEREST ENGINE
Principal / rate / tenure / frequency -> maturity projection

RESPONSIBILITIES:
- A = P(1 + r/n)^(n*t), with r = rate/100 and t = months/12
- Month-by-month projection for month = 1..tenure
- Maturity date arithmetic

RULES (LOCKED):
❌ No I/O, no clock reads inside calculate()
❌ No rounding mid-calculation
✅ Decimal throughout
✅ Round to 2dp (ROUND_HALF_UP) only on output
✅ Unknown frequency compounds annually
"""

from datetime import date
from decimal import Context, Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Union

from app.domain.errors import ValidationError
from app.domain.models import CompoundFrequency, InvestmentProjection, MonthlyProjection
from app.utils.time import add_months

CENT = Decimal("0.01")
HUNDRED = Decimal("100")
MONTHS_PER_YEAR = Decimal("12")

# Working precision for the power series; output is quantized afterwards.
_CONTEXT = Context(prec=34, rounding=ROUND_HALF_UP)

Number = Union[Decimal, int, float, str]


def to_money(value: Decimal) -> Decimal:
    """Quantize to 2dp for output"""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


class CompoundInterestEngine:
    """
    Compound Interest Engine
    Pure and deterministic: identical inputs give identical projections
    """

    def calculate(
        self,
        principal: Number,
        annual_rate_percent: Number,
        tenure_months: int,
        compound_frequency: Union[CompoundFrequency, str, None] = CompoundFrequency.ANNUALLY,
        include_monthly: bool = True,
    ) -> InvestmentProjection:
        """
        Project the value of a principal at maturity

        Args:
            principal: Amount invested, must be > 0
            annual_rate_percent: Annual yield in percent, must be >= 0
            tenure_months: Whole months, must be > 0
            compound_frequency: daily / monthly / quarterly / annually
            include_monthly: Also build the month-by-month projection

        Returns:
            InvestmentProjection with 2dp money values

        Raises:
            ValidationError: On non-positive principal/tenure or negative rate
        """
        p = self._as_decimal(principal, "principal")
        rate = self._as_decimal(annual_rate_percent, "annual_rate_percent")

        if p <= 0:
            raise ValidationError("Principal must be positive", field="principal")
        if rate < 0:
            raise ValidationError("Annual rate cannot be negative", field="annual_rate_percent")
        if isinstance(tenure_months, bool) or not isinstance(tenure_months, int):
            raise ValidationError("Tenure must be a whole number of months", field="tenure_months")
        if tenure_months <= 0:
            raise ValidationError("Tenure must be positive", field="tenure_months")

        n = CompoundFrequency.parse(compound_frequency).periods_per_year
        growth_base = _CONTEXT.add(Decimal(1), _CONTEXT.divide(_CONTEXT.divide(rate, HUNDRED), Decimal(n)))

        final_amount = self._value_at(p, growth_base, n, tenure_months)
        total_returns = final_amount - p

        monthly = ()
        if include_monthly:
            monthly = tuple(
                self._project_month(p, growth_base, n, month)
                for month in range(1, tenure_months + 1)
            )

        return InvestmentProjection(
            principal=to_money(p),
            final_amount=to_money(final_amount),
            total_returns=to_money(total_returns),
            return_percentage=to_money(total_returns / p * HUNDRED),
            monthly_projections=monthly,
        )

    @staticmethod
    def maturity_date(start: date, tenure_months: int) -> date:
        """Date at which the tenure elapses from start"""
        return add_months(start, tenure_months)

    def _project_month(
        self,
        principal: Decimal,
        growth_base: Decimal,
        periods_per_year: int,
        month: int,
    ) -> MonthlyProjection:
        value = self._value_at(principal, growth_base, periods_per_year, month)
        returns = value - principal
        return MonthlyProjection(
            month=month,
            value=to_money(value),
            returns=to_money(returns),
            return_percentage=to_money(returns / principal * HUNDRED),
        )

    @staticmethod
    def _value_at(
        principal: Decimal,
        growth_base: Decimal,
        periods_per_year: int,
        months: int,
    ) -> Decimal:
        # n*t with t = months/12; exact whenever n*months divides by 12
        exponent = _CONTEXT.divide(Decimal(periods_per_year * months), MONTHS_PER_YEAR)
        return _CONTEXT.multiply(principal, _CONTEXT.power(growth_base, exponent))

    @staticmethod
    def _as_decimal(value: Number, field_name: str) -> Decimal:
        if isinstance(value, bool):
            raise ValidationError(f"{field_name} must be a number", field=field_name)
        try:
            result = value if isinstance(value, Decimal) else Decimal(str(value))
        except (InvalidOperation, ValueError, TypeError):
            raise ValidationError(f"{field_name} must be a number", field=field_name)
        if not result.is_finite():
            raise ValidationError(f"{field_name} must be finite", field=field_name)
        return result
