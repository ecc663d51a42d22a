"""Installment plans offered at checkout.

The first installment is due at enrollment; the rest are due monthly.
"""

from __future__ import annotations

from pydantic import BaseModel
from thub_shared.errors import ValidationError
from thub_shared.formatting import calculate_installments, format_currency

INSTALLMENT_MONTHS = (3, 6, 12)


class InstallmentPlan(BaseModel):
    months: int
    label: str
    monthly_amount: str
    amounts: list[float]

    @property
    def initial_payment(self) -> float:
        return self.amounts[0]


def _plan(total: float, months: int) -> InstallmentPlan:
    return InstallmentPlan(
        months=months,
        label=f"{months} months",
        monthly_amount=format_currency(total / months),
        amounts=calculate_installments(total, months),
    )


def installment_options(total: float) -> list[InstallmentPlan]:
    return [_plan(total, months) for months in INSTALLMENT_MONTHS]


def select_plan(total: float, months: int) -> InstallmentPlan:
    if months not in INSTALLMENT_MONTHS:
        offered = ", ".join(str(m) for m in INSTALLMENT_MONTHS)
        raise ValidationError(f"Installments are offered over {offered} months, not {months}")
    return _plan(total, months)
