# validation.py
import math
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional, Union

from pydantic import ValidationError

from models import JOB_LEVELS, Employee

MAX_YEARS = 50

NOT_A_NUMBER = "Expected a number"
YEARS_RANGE = f"Years at company must be between 0 and {MAX_YEARS}"
INCOME_RANGE = "Monthly income must be 0 or greater"
LEVEL_CHOICE = "Job level must be one of: " + ", ".join(JOB_LEVELS)

RULE_MESSAGES = {
    "yearsAtCompany": YEARS_RANGE,
    "monthlyIncome": INCOME_RANGE,
    "jobLevel": LEVEL_CHOICE,
}


@dataclass(frozen=True)
class Valid:
    employee: Employee
    ok: bool = field(default=True, init=False)


@dataclass(frozen=True)
class Invalid:
    errors: Dict[str, str]
    ok: bool = field(default=False, init=False)


ValidationResult = Union[Valid, Invalid]


def _to_number(raw: object) -> Optional[float]:
    # an empty field counts as 0, like a blank number input
    if raw is None:
        return 0.0
    if isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        value = float(raw)
    else:
        text = str(raw).strip()
        if not text:
            return 0.0
        try:
            value = float(text)
        except ValueError:
            return None
    if math.isnan(value) or math.isinf(value):
        return None
    return value


def validate_employee(raw: Mapping[str, object]) -> ValidationResult:
    """Turn raw form values into an Employee, or explain what is wrong.

    Each offending field gets exactly one message; the first rule it breaks
    wins. Range and level rules come from the ``Employee`` model.
    """
    errors: Dict[str, str] = {}
    candidate = {"jobLevel": raw.get("jobLevel")}
    for name in ("yearsAtCompany", "monthlyIncome"):
        number = _to_number(raw.get(name))
        if number is None:
            errors[name] = NOT_A_NUMBER
        else:
            candidate[name] = number

    try:
        employee = Employee.model_validate(candidate)
    except ValidationError as exc:
        for err in exc.errors():
            name = str(err["loc"][0]) if err["loc"] else ""
            if name in RULE_MESSAGES:
                errors.setdefault(name, RULE_MESSAGES[name])
        return Invalid(errors)

    if errors:
        return Invalid(errors)
    return Valid(employee)
