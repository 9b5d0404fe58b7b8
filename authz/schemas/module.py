"""Schemas for modules, company provisioning and user module grants."""

from datetime import datetime
from decimal import Decimal
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

AccessSource = Literal["granted", "explicitly_revoked", "never_granted"]


class ModuleResponse(BaseModel):
    """Catalog module."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    key: str
    name: str
    description: str | None = None
    module_type: str
    category: str | None = None
    module_classification: str
    is_core_required: bool
    is_active: bool
    default_monthly_price: Decimal | None = None
    default_per_user_price: Decimal | None = None


class CompanyModuleResponse(BaseModel):
    """Company provisioning row."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    company_id: UUID
    module_id: UUID
    is_enabled: bool
    enabled_by: UUID | None = None
    enabled_at: datetime | None = None
    monthly_price: Decimal | None = None
    per_user_price: Decimal | None = None
    users_licensed: int = 0


class CompanyModuleStatus(BaseModel):
    """A catalog module with its provisioning state for one company."""

    module: ModuleResponse
    is_enabled: bool = False
    enabled_by: UUID | None = None
    enabled_at: datetime | None = None
    monthly_price: Decimal | None = None
    per_user_price: Decimal | None = None


class ProvisioningResponse(BaseModel):
    """Result of enabling or disabling a company module."""

    company_module: CompanyModuleResponse | None = None
    affected_users: int = Field(0, ge=0, description="User grants disabled by the cascade")


class UserModuleResponse(BaseModel):
    """User module grant row."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    module_id: UUID
    company_id: UUID
    is_enabled: bool
    granted_by: UUID | None = None
    granted_at: datetime | None = None


class UserModuleStatus(BaseModel):
    """A company-enabled module with the user's access state."""

    module: ModuleResponse
    is_enabled: bool = False
    company_enabled: bool = True
    access_source: AccessSource = "never_granted"


class ModuleClassificationUpdate(BaseModel):
    """Request body for a billing classification change."""

    module_classification: Literal["core", "addon"]
    reason: str | None = Field(None, max_length=500)


class CompanyModulePricingUpdate(BaseModel):
    """Request body for a company pricing override."""

    monthly_price: Decimal | None = Field(None, ge=0)
    per_user_price: Decimal | None = Field(None, ge=0)
    users_licensed: int | None = Field(None, ge=0, description="Licensed seats; unchanged when omitted")


class ModuleCostLine(BaseModel):
    """Monthly cost of one enabled module."""

    module_id: UUID
    module_key: str
    module_name: str
    module_classification: str
    monthly_price: Decimal
    per_user_price: Decimal
    users_licensed: int
    users_with_access: int
    licensed_monthly_cost: Decimal
    actual_monthly_cost: Decimal


class ModuleCostSummary(BaseModel):
    total_modules: int
    total_licensed_cost: Decimal
    total_actual_cost: Decimal
    cost_difference: Decimal
    by_classification: dict[str, int] = Field(default_factory=dict)


class CompanyModuleCosts(BaseModel):
    """Licensed versus actual cost of a company's enabled modules."""

    company_id: UUID
    modules: list[ModuleCostLine]
    summary: ModuleCostSummary


class CompanyHasModuleRequest(BaseModel):
    company_id: UUID
    module_key: str = Field(..., min_length=1, max_length=100)


class CompanyHasModuleResponse(BaseModel):
    company_id: UUID
    module_key: str
    has_module: bool
