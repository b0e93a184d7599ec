# models.py
"""Records exchanged with the attrition backend.

Backend payloads are parsed with pydantic through ``from_json`` /
``list_from_json`` so a response with missing keys or non-numeric figures
fails loudly with :class:`ResponseFormatError` instead of breaking the
views later on.
"""
from typing import Annotated, Any, Dict, List, Literal, Tuple, get_args

from pydantic import AllowInfNan, BaseModel, ConfigDict, Field, Strict, StrictStr, TypeAdapter, ValidationError

JobLevel = Literal["Entry Level", "Mid Level", "Senior", "Manager", "Director"]
RiskLevel = Literal["Low", "Medium", "High"]

JOB_LEVELS: Tuple[str, ...] = get_args(JobLevel)
RISK_LEVELS: Tuple[str, ...] = get_args(RiskLevel)

# a flag or a numeric string is never a figure
Number = Annotated[float, Strict(), AllowInfNan(False)]
Count = Annotated[int, Strict(), Field(ge=0)]


# ---------------------- ERRORS ----------------------
class ApiError(Exception):
    """Base class for failures talking to the attrition backend."""


class NetworkError(ApiError):
    """The request never produced an HTTP response."""


class HttpError(ApiError):
    def __init__(self, status_code: int, url: str, detail: str = ""):
        self.status_code = status_code
        self.url = url
        self.detail = detail
        msg = f"HTTP {status_code} from {url}"
        if detail:
            msg += f": {detail}"
        super().__init__(msg)


class ResponseFormatError(ApiError):
    """The backend answered, but not with the agreed shape."""


def _wire_number(value: float):
    return int(value) if float(value).is_integer() else value


# ---------------------- RECORDS ----------------------
class Record(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    @classmethod
    def from_json(cls, payload: Any):
        try:
            return cls.model_validate(payload)
        except ValidationError as exc:
            raise ResponseFormatError(f"{cls.__name__}: {exc}") from exc

    @classmethod
    def list_from_json(cls, payload: Any) -> List[Any]:
        try:
            return TypeAdapter(List[cls]).validate_python(payload)
        except ValidationError as exc:
            raise ResponseFormatError(f"list of {cls.__name__}: {exc}") from exc


class Employee(Record):
    years_at_company: float = Field(..., ge=0, le=50, alias="yearsAtCompany")
    monthly_income: float = Field(..., ge=0, alias="monthlyIncome")
    job_level: JobLevel = Field(..., alias="jobLevel")

    def to_json(self) -> Dict[str, Any]:
        return {
            "yearsAtCompany": _wire_number(self.years_at_company),
            "monthlyIncome": _wire_number(self.monthly_income),
            "jobLevel": self.job_level,
        }


class RiskFactor(Record):
    factor: StrictStr
    impact: Number


class AttritionPrediction(Record):
    probability: Number
    risk_level: RiskLevel = Field(..., alias="riskLevel")
    top_factors: Tuple[RiskFactor, ...] = Field(..., alias="topFactors")


class DepartmentMetrics(Record):
    department: StrictStr
    attrition_rate: Number = Field(..., alias="attritionRate")
    employee_count: Count = Field(..., alias="employeeCount")
    predicted_attrition: Number = Field(..., alias="predictedAttrition")


class TrendPoint(Record):
    month: StrictStr
    rate: Number
